# data.py

from typing import Any, Dict, List

# Catalogue written to a fresh data file: movies and their shows.
MOVIES: List[Dict[str, Any]] = [
    {
        "id": 1,
        "title": "Inception",
        "genre": "Sci-Fi",
        "duration": 148,
        "shows": [
            {"showId": 1, "time": "2026-11-01T14:00:00Z", "pricePerSeat": 12.5, "availableSeats": 10},
            {"showId": 2, "time": "2026-11-01T19:30:00Z", "pricePerSeat": 15.0, "availableSeats": 80},
        ],
    },
    {
        "id": 2,
        "title": "The Godfather",
        "genre": "Crime",
        "duration": 175,
        "shows": [
            {"showId": 1, "time": "2026-11-01T13:00:00Z", "pricePerSeat": 10.0, "availableSeats": 60},
            {"showId": 2, "time": "2026-11-01T20:30:00Z", "pricePerSeat": 14.0, "availableSeats": 40},
        ],
    },
    {
        "id": 3,
        "title": "Pulp Fiction",
        "genre": "Crime",
        "duration": 154,
        "shows": [
            {"showId": 1, "time": "2026-11-02T17:00:00Z", "pricePerSeat": 11.0, "availableSeats": 50},
        ],
    },
]


def initial_snapshot() -> Dict[str, Any]:
    """Empty user list plus a fresh copy of the seed catalogue."""
    movies = []
    for movie in MOVIES:
        movies.append({**movie, "shows": [dict(show) for show in movie["shows"]]})
    return {"users": [], "movies": movies}
