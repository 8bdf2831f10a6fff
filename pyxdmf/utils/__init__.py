# SPDX-License-Identifier: BSD-3-Clause
# Part of the pyxdmf project – https://github.com/pyxdmf/pyxdmf
"""
Utility functions used across pyxdmf.
"""

from .fs import (
    INVALID_FILE_NAME_CHARS,
    create_dir_all,
    publish_atomic,
    replace_atomic,
    validate_file_name,
)

__all__ = [
    "INVALID_FILE_NAME_CHARS",
    "create_dir_all",
    "publish_atomic",
    "replace_atomic",
    "validate_file_name",
]
