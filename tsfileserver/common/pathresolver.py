import os
from typing import Optional, Tuple

from tsfileserver.common.exceptions import PathEscape


def resolve_path(base:str, request_path:str) -> Tuple[Optional[str], Optional[PathEscape]]:
	"""
	Maps a request path onto the filesystem below `base`.

	The check is purely lexical: `.` and `..` segments are collapsed by
	os.path.normpath and symlinks are NOT followed. The result is either
	`base` itself or something that starts with `base` + separator.

	Returns (path, None) on success and (None, PathEscape) otherwise.
	"""
	if '\x00' in request_path:
		return None, PathEscape()

	item = os.path.normpath(os.path.join(base, request_path.lstrip('/' + os.sep)))
	prefix = base if base.endswith(os.sep) else base + os.sep
	if item != base and not item.startswith(prefix):
		return None, PathEscape()
	return item, None
