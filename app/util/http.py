from fastapi import HTTPException
from app.services.results import Ok, Result

_STATUS = {
    "validation": 400,
    "not_found": 404,
    "invalid_state": 409,
    "persistence": 500,
}

def invalid_field_message(errors) -> str:
    """First pydantic error → "Invalid or missing '<field>'"."""
    if not errors:
        return "Invalid request body"
    loc = [str(p) for p in errors[0].get("loc", ()) if p not in ("body", "query", "path")]
    field = ".".join(loc) or "body"
    return f"Invalid or missing '{field}'"

def unwrap(result: Result):
    """Ok → value; Err → HTTPException with the mapped status."""
    if isinstance(result, Ok):
        return result.value
    err = result.error
    headers = {"Retry-After": "1"} if getattr(err, "retryable", False) else None
    raise HTTPException(status_code=_STATUS.get(err.kind, 500), detail=err.message, headers=headers)
