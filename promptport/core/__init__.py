"""Lowest-level promptport core utilities.

Dependency direction rules:
- promptport.core must not import toolchain.*
"""

from promptport.core.hash import sha256_bytes, sha256_text
from promptport.core.jail import (
	lexical_abspath,
	normalize_root_rel,
	relpath_within_root,
	resolve_root_rel_path,
	safe_relpath,
)
from promptport.core.text import (
	EOL_CRLF,
	EOL_LF,
	decode_utf8_strict,
	detect_eol,
	read_text_exact,
	restore_eol,
	to_lf,
)

__all__ = [
	"EOL_CRLF",
	"EOL_LF",
	"decode_utf8_strict",
	"detect_eol",
	"lexical_abspath",
	"normalize_root_rel",
	"read_text_exact",
	"relpath_within_root",
	"resolve_root_rel_path",
	"restore_eol",
	"safe_relpath",
	"sha256_bytes",
	"sha256_text",
	"to_lf",
]
