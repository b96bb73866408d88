"""Shared deterministic builders for persistence tests."""

from __future__ import annotations

from typing import Final

TWO_CHAIN_RECORDS: Final[tuple[dict[str, object], ...]] = (
    {
        "taskCode": "C",
        "operationName": "Finish",
        "elementName": "Wall",
        "duration": 4,
        "crew": {"name": "team", "assignment": 1},
        "dependencies": ["B"],
    },
    {
        "taskCode": "B",
        "operationName": "Cure",
        "elementName": "Wall",
        "duration": 20,
        "crew": {"name": "team", "assignment": 1},
        "dependencies": ["A"],
    },
    {
        "taskCode": "A",
        "operationName": "Pour",
        "elementName": "Wall",
        "duration": 5,
        "crew": {"name": "team", "assignment": 1},
        "equipment": [{"name": "Concrete pump", "quantity": 1}],
    },
    {
        "taskCode": "D",
        "operationName": "Paint",
        "elementName": "Door",
        "duration": 2,
        "crew": {"name": "team", "assignment": 1},
        "dependencies": ["E"],
    },
    {
        "taskCode": "E",
        "operationName": "Hang",
        "elementName": "Door",
        "duration": 3,
        "crew": {"name": "team", "assignment": 1},
    },
)


def two_chain_records() -> list[dict[str, object]]:
    """Fresh copy of the two-chain fixture, safe to mutate."""
    return [
        {key: (list(value) if isinstance(value, list) else value) for key, value in record.items()}
        for record in TWO_CHAIN_RECORDS
    ]


__all__ = ["TWO_CHAIN_RECORDS", "two_chain_records"]
