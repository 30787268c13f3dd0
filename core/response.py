from pydantic import BaseModel


def _serialize(data):
    """Dump pydantic models (and lists of them) with their wire aliases."""
    if isinstance(data, BaseModel):
        return data.model_dump(by_alias=True, mode="json")
    if isinstance(data, (list, tuple)):
        return [_serialize(item) for item in data]
    return data


def ok(data=None):
    """Standard success envelope."""
    return {"ok": True, "data": _serialize(data), "error": None}


def error(code: str = "internal_error", message: str = "An internal error occurred"):
    """Standard error envelope."""
    return {"ok": False, "data": None, "error": {"code": code, "message": message}}
