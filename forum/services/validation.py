from forum.errors import ValidationError


def require(fields: dict) -> None:
    """
    Raise ``ValidationError`` naming every field in *fields* that is
    absent. ``None``, ``0`` and ``""`` all count as absent.

    Keys are the wire names so the message matches what the client sent.
    """
    missing = [name for name, value in fields.items() if value is None or value == 0 or value == ""]
    if missing:
        raise ValidationError(f"Missing {', '.join(missing)}")
