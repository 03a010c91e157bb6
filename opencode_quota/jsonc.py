"""JSON-with-comments support for opencode.jsonc config files."""
import json
from pathlib import Path
from typing import Any, Optional

from opencode_quota.exceptions import JsoncDecodeError
from opencode_quota.observability.logger import get_logger

log = get_logger("jsonc")


def strip_json_comments(content: str) -> str:
    """Remove // and /* */ comments that sit outside string literals."""
    out: list[str] = []
    i = 0
    n = len(content)
    quote: Optional[str] = None

    while i < n:
        char = content[i]

        if quote:
            out.append(char)
            if char == "\\" and i + 1 < n:
                out.append(content[i + 1])
                i += 2
                continue
            if char == quote:
                quote = None
            i += 1
            continue

        if char in ('"', "'"):
            quote = char
            out.append(char)
            i += 1
            continue

        nxt = content[i + 1] if i + 1 < n else ""
        if char == "/" and nxt == "/":
            while i < n and content[i] != "\n":
                i += 1
            continue
        if char == "/" and nxt == "*":
            end = content.find("*/", i + 2)
            i = n if end == -1 else end + 2
            continue

        out.append(char)
        i += 1

    return "".join(out)


def parse_json_or_jsonc(content: str, is_jsonc: bool, path: Optional[str] = None) -> Any:
    text = strip_json_comments(content) if is_jsonc else content
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise JsoncDecodeError.from_json_error(e, path=path) from e


def read_json_file(path) -> Optional[Any]:
    """Read a .json or .jsonc file. Missing or unparseable files yield None."""
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        log.warning("config_file_unreadable", path=str(path), error=str(e))
        return None

    try:
        return parse_json_or_jsonc(content, path.suffix == ".jsonc", path=str(path))
    except JsoncDecodeError as e:
        log.warning("config_file_invalid", path=str(path), error=str(e))
        return None
