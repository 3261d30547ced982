from dataclasses import dataclass
from typing import Any, Optional


class SubmissionError(ValueError):
    """The request body does not describe a valid submission."""


SCALAR_TYPES = (str, int, float, bool, type(None))


@dataclass(slots=True)
class Submission:
    username: Optional[str]
    image_type: str  # category, also the sheet tab name
    image_data: list[dict[str, Any]]
    folder_type: Optional[str] = None
    folder_id: Optional[str] = None


def _optional_str(payload: dict, key: str) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise SubmissionError(f"'{key}' must be a string")
    return value.strip() or None


def parse_submission(payload: Any, require_username: bool = True) -> Submission:
    """Validate a JSON body into a Submission before any remote call is made."""
    if not isinstance(payload, dict):
        raise SubmissionError("Request body must be a JSON object")

    username = _optional_str(payload, "username")
    image_type = _optional_str(payload, "imageType")
    image_data = payload.get("imageData")

    if require_username and not username:
        raise SubmissionError("Missing or invalid required fields: username")
    if not image_type:
        raise SubmissionError("Missing or invalid required fields: imageType")
    if not isinstance(image_data, list) or not image_data:
        raise SubmissionError("Missing or invalid required fields: imageData")
    if not all(isinstance(record, dict) for record in image_data):
        raise SubmissionError("Every imageData entry must be an object")
    if not image_data[0]:
        # headers come from the first record
        raise SubmissionError("The first imageData entry has no fields")
    for i, record in enumerate(image_data):
        for key, value in record.items():
            if not isinstance(value, SCALAR_TYPES):
                raise SubmissionError(f"imageData[{i}].{key} must be a scalar value")

    return Submission(
        username=username,
        image_type=image_type,
        image_data=image_data,
        folder_type=_optional_str(payload, "folderType"),
        folder_id=_optional_str(payload, "folderId"),
    )
