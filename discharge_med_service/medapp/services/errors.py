# medapp/services/errors.py
from typing import Any, Dict, List, Optional


class InvalidArgument(TypeError):
    pass


class ExtractionError(RuntimeError):
    """Base for typed extraction failures. `detail` is shown to the operator."""

    kind = "ExtractionError"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InputValidationError(ExtractionError):
    kind = "ValidationError"


class NoMedicationsFound(ExtractionError):
    kind = "NoMedicationsFound"

    def __init__(self, detail: str = "No valid medications could be parsed"):
        super().__init__(detail)


class MissingField(ExtractionError):
    kind = "MissingField"

    def __init__(self, missing: List[str], record: Optional[Dict[str, Any]] = None):
        self.missing = list(missing)
        self.record = record
        detail = f"Missing required fields: {', '.join(self.missing)}"
        if record is not None:
            detail += f" in medication: {record}"
        super().__init__(detail)


class MalformedResponse(ExtractionError):
    kind = "MalformedResponse"

    def __init__(self, detail: str, raw_text: str):
        super().__init__(detail)
        self.raw_text = raw_text
