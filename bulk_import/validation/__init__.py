from .validator import is_blank, is_valid_email, validate_row, validate_rows

__all__ = [
    "is_blank",
    "is_valid_email",
    "validate_row",
    "validate_rows",
]
