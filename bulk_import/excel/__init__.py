from .reader import FileFormatError, check_upload, read_rows
from .template import build_template, save_template, template_filename

__all__ = [
    "FileFormatError",
    "check_upload",
    "read_rows",
    "build_template",
    "save_template",
    "template_filename",
]
