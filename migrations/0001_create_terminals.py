"""
Create the terminals table.

Terminals are the physical LoRa alert devices deployed in communities. The
weather backend only needs their identifier and location; the rest of the
terminal record lives in the main ResQWave backend.
"""

from yoyo import step

steps = [
    step(
        """
        CREATE TABLE IF NOT EXISTS terminals (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            latitude REAL NOT NULL,
            longitude REAL NOT NULL,
            created_at TEXT NOT NULL
        )
        """,
        "DROP TABLE IF EXISTS terminals",
    ),
]
