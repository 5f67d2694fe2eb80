import re


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def iexact(value: str) -> dict:
    """
    Case-insensitive exact match filter for MongoDB.
    User input is escaped so "a.b" does not match "axb".
    """
    return {"$regex": f"^{re.escape(value.strip())}$", "$options": "i"}


def icontains(value: str) -> dict:
    return {"$regex": re.escape(value.strip()), "$options": "i"}
