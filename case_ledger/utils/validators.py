"""
Input validation for the Case Ledger API.

Request bodies and query parameters are checked here before they reach the
ledger services. Failures raise ValidationError, which the HTTP layer turns
into a 400 response.
"""

import re
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from case_ledger.models.entities import CASE_STATUSES, PRIORITY_LEVELS


class ValidationError(Exception):
    """Custom exception for validation errors"""

    def __init__(self, message: str, field: Optional[str] = None, code: Optional[str] = None):
        self.message = message
        self.field = field
        self.code = code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "field": self.field, "code": self.code}


# Text fields of a case and the maximum length accepted for each
CASE_TEXT_FIELDS = {
    "case_number": 100,
    "serial_number": 20,
    "case_name_parties": 500,
    "court_name": 200,
    "case_type": 100,
    "section": 200,
    "step_of_the_day": 500,
    "notes": 5000,
}

CLIENT_TEXT_FIELDS = {
    "name": 200,
    "phone": 50,
    "email": 254,
    "address": 1000,
    "notes": 5000,
    "case_number": 100,
    "case_name": 500,
}

PHOTO_MAX_LENGTH = 5 * 1024 * 1024


class InputValidator:
    """Validation and sanitization helpers for ledger input"""

    RECORD_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")
    EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
    DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
    CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

    def sanitize_string(self, value: Any, max_length: Optional[int] = None) -> str:
        """
        Sanitize string input

        Args:
            value: Input value to sanitize
            max_length: Maximum allowed length

        Returns:
            Sanitized string
        """
        if value is None:
            return ""

        if not isinstance(value, str):
            value = str(value)

        # Drop control characters but keep tabs and newlines in notes
        value = self.CONTROL_CHARS.sub("", value).strip()

        if max_length and len(value) > max_length:
            value = value[:max_length]

        return value

    def validate_text(self, value: Any, field_name: str, max_length: int, required: bool = False) -> str:
        if value is not None and not isinstance(value, (str, int, float)):
            raise ValidationError(f"{field_name} must be a string", field_name, "INVALID_TYPE")

        sanitized = self.sanitize_string(value)
        if required and not sanitized:
            raise ValidationError(f"{field_name} is required", field_name, "REQUIRED")
        if len(sanitized) > max_length:
            raise ValidationError(f"{field_name} too long (max {max_length} characters)", field_name, "TOO_LONG")
        return sanitized

    def validate_record_id(self, record_id: Any, field_name: str = "id") -> str:
        """
        Validate a record identifier

        Raises:
            ValidationError: If the identifier is missing or malformed
        """
        if not record_id:
            raise ValidationError(f"{field_name} is required", field_name, "REQUIRED")

        if not isinstance(record_id, str):
            raise ValidationError(f"{field_name} must be a string", field_name, "INVALID_TYPE")

        sanitized = record_id.strip()
        if not self.RECORD_ID_PATTERN.match(sanitized):
            raise ValidationError(f"Invalid {field_name} format", field_name, "INVALID_FORMAT")

        return sanitized

    def validate_email(self, email: Any, field_name: str = "email", required: bool = True) -> str:
        if not email:
            if required:
                raise ValidationError("Email is required", field_name, "REQUIRED")
            return ""

        if not isinstance(email, str):
            raise ValidationError("Email must be a string", field_name, "INVALID_TYPE")

        sanitized = email.strip().lower()
        if len(sanitized) > 254 or not self.EMAIL_PATTERN.match(sanitized):
            raise ValidationError("Invalid email format", field_name, "INVALID_FORMAT")

        return sanitized

    def validate_date(self, value: Any, field_name: str = "date", required: bool = True) -> str:
        """
        Validate an ISO calendar date (YYYY-MM-DD)

        Returns:
            The date string, or "" when optional and empty
        """
        if not value:
            if required:
                raise ValidationError(f"{field_name} is required", field_name, "REQUIRED")
            return ""

        if not isinstance(value, str) or not self.DATE_PATTERN.match(value.strip()):
            raise ValidationError(f"{field_name} must be a date in YYYY-MM-DD format", field_name, "INVALID_FORMAT")

        try:
            date.fromisoformat(value.strip())
        except ValueError:
            raise ValidationError(f"{field_name} is not a valid calendar date", field_name, "INVALID_VALUE")

        return value.strip()

    def validate_boolean(self, value: Any, field_name: str) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "1", "yes", "on", "false", "0", "no", "off"):
            return value.lower() in ("true", "1", "yes", "on")
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        raise ValidationError(f"{field_name} must be a boolean", field_name, "INVALID_TYPE")

    def validate_choice(self, value: Any, field_name: str, allowed_values: Iterable[str], default: str) -> str:
        """Validate a filter or sort parameter against a fixed set of values"""
        if value is None or value == "":
            return default

        allowed = list(allowed_values)
        sanitized = self.sanitize_string(value, max_length=100)
        if sanitized not in allowed:
            raise ValidationError(
                f"Invalid {field_name} value. Allowed values: {', '.join(allowed)}",
                field_name,
                "INVALID_VALUE",
            )
        return sanitized

    def validate_search_query(self, query: Any, field_name: str = "q") -> str:
        if not query:
            return ""

        if not isinstance(query, str):
            raise ValidationError("Search query must be a string", field_name, "INVALID_TYPE")

        if len(query) > 500:
            raise ValidationError("Search query too long (max 500 characters)", field_name, "TOO_LONG")

        return self.sanitize_string(query, max_length=500)

    def validate_id_list(self, ids: Any, field_name: str = "ids") -> List[str]:
        """Validate the selection of a bulk operation"""
        if not isinstance(ids, list):
            raise ValidationError(f"{field_name} must be a list of ids", field_name, "INVALID_TYPE")

        if not ids:
            raise ValidationError("No items selected", field_name, "REQUIRED")

        if len(ids) > 1000:
            raise ValidationError("Too many items selected (max 1000)", field_name, "TOO_LARGE")

        return [self.validate_record_id(item, field_name) for item in ids]

    def validate_photo(self, value: Any, field_name: str = "photo") -> Optional[str]:
        if value in (None, ""):
            return None

        if not isinstance(value, str) or not value.startswith("data:image/"):
            raise ValidationError("Photo must be an image data URL", field_name, "INVALID_FORMAT")

        if len(value) > PHOTO_MAX_LENGTH:
            raise ValidationError("Photo too large", field_name, "TOO_LARGE")

        return value

    def validate_case_payload(self, data: Any) -> Dict[str, Any]:
        """
        Validate a case body for create or edit

        The history list is never accepted from a client: it is maintained by
        the ledger and silently dropped here.

        Args:
            data: Decoded JSON body

        Returns:
            Dictionary of validated case fields

        Raises:
            ValidationError: If any field is invalid
        """
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object", "body", "INVALID_TYPE")

        validated: Dict[str, Any] = {}

        for field_name, max_length in CASE_TEXT_FIELDS.items():
            if field_name in data:
                validated[field_name] = self.validate_text(
                    data[field_name], field_name, max_length, required=field_name == "case_number"
                )

        if "next_date" in data:
            validated["next_date"] = self.validate_date(data["next_date"], "next_date")
        if "previous_date" in data:
            validated["previous_date"] = self.validate_date(data["previous_date"], "previous_date", required=False)

        if "priority" in data:
            validated["priority"] = self.validate_choice(data["priority"], "priority", PRIORITY_LEVELS, "Medium")
        if "status" in data:
            validated["status"] = self.validate_choice(data["status"], "status", CASE_STATUSES, "Active")
        if "is_task_done" in data:
            validated["is_task_done"] = self.validate_boolean(data["is_task_done"], "is_task_done")

        if "client_id" in data:
            client_id = data["client_id"]
            validated["client_id"] = self.validate_record_id(client_id, "client_id") if client_id else None

        return validated

    def validate_new_case(self, data: Any) -> Dict[str, Any]:
        validated = self.validate_case_payload(data)
        for required in ("case_number", "next_date"):
            if not validated.get(required):
                raise ValidationError(f"{required} is required", required, "REQUIRED")
        return validated

    def validate_client_payload(self, data: Any, require_name: bool = True) -> Dict[str, Any]:
        """
        Validate a client body for create or edit

        Raises:
            ValidationError: If any field is invalid
        """
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object", "body", "INVALID_TYPE")

        validated: Dict[str, Any] = {}

        for field_name, max_length in CLIENT_TEXT_FIELDS.items():
            if field_name in data:
                validated[field_name] = self.validate_text(
                    data[field_name], field_name, max_length, required=field_name == "name"
                )

        if require_name and not validated.get("name"):
            raise ValidationError("name is required", "name", "REQUIRED")

        if validated.get("email"):
            validated["email"] = self.validate_email(validated["email"])

        for optional in ("case_number", "case_name"):
            if optional in validated and not validated[optional]:
                validated[optional] = None

        if "last_contacted" in data:
            validated["last_contacted"] = (
                self.validate_date(data["last_contacted"], "last_contacted", required=False) or None
            )
        if "photo" in data:
            validated["photo"] = self.validate_photo(data["photo"])

        return validated

    def validate_profile_payload(self, data: Any) -> Dict[str, Any]:
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object", "body", "INVALID_TYPE")

        validated: Dict[str, Any] = {}
        if "name" in data:
            validated["name"] = self.validate_text(data["name"], "name", 200, required=True)
        if "photo" in data:
            validated["photo"] = self.validate_photo(data["photo"]) or ""
        return validated


# Global validator instance
validator = InputValidator()
