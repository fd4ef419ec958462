"""
Template copy and placeholder substitution.

All tokens are replaced in a single pass over each file, so a substituted value
is never scanned again for other tokens. Binary files (anything outside the
text allow-list) are copied but never rewritten.
"""
import os
import re
import shutil
from pathlib import Path
from typing import Dict, List, Mapping, Union

from portal.models import BackendEndpoints, PortalConfig

PathLike = Union[str, os.PathLike]

TEXT_EXTENSIONS = (
    ".js", ".ts", ".tsx", ".jsx", ".json", ".md", ".txt",
    ".css", ".scss", ".html", ".xml", ".yaml", ".yml",
    ".env", ".gitignore", ".npmrc", ".prettierrc",
)

TOKEN_PATTERN = re.compile(r"\{\{[A-Z][A-Z0-9_]*\}\}")


def is_text_file(filename: str) -> bool:
    """Allow-listed extension, or no dot at all (LICENSE, Dockerfile)."""
    return filename.endswith(TEXT_EXTENSIONS) or "." not in filename


def copy_directory(src: PathLike, dest: PathLike) -> None:
    """Replace dest with a byte-identical copy of src. Destructive; errors propagate."""
    src, dest = Path(src), Path(dest)
    if not src.is_dir():
        raise FileNotFoundError(f"Template directory not found: {src}")
    if dest.exists():
        shutil.rmtree(dest)
    shutil.copytree(src, dest)


def merge_directory(src: PathLike, dest: PathLike) -> None:
    """Copy src's contents into dest, overwriting same-named files and keeping the rest."""
    src, dest = Path(src), Path(dest)
    if not src.is_dir():
        raise FileNotFoundError(f"Template directory not found: {src}")
    shutil.copytree(src, dest, dirs_exist_ok=True)


def build_token_map(portal: PortalConfig, backend: BackendEndpoints) -> Dict[str, str]:
    return {
        "{{PORTAL_ID}}": portal.id,
        "{{PORTAL_NAME}}": portal.name,
        "{{PORTAL_DOMAIN}}": portal.domain,
        "{{PORTAL_ICON}}": portal.icon,
        "{{PORTAL_DESCRIPTION}}": portal.description,
        "{{BACKEND_URL}}": backend.production,
        "{{WEBSOCKET_URL}}": backend.websocket,
        "{{PORTAL_TIER}}": str(portal.tier),
        "{{PORTAL_TYPE}}": portal.type,
    }


def substitute_text(text: str, tokens: Mapping[str, str]) -> str:
    if not tokens:
        return text
    # Longest first so a token that is a prefix of another cannot shadow it.
    keys = sorted(tokens, key=len, reverse=True)
    pattern = re.compile("|".join(re.escape(k) for k in keys))
    return pattern.sub(lambda m: tokens[m.group(0)], text)


def replace_in_directory(root: PathLike, tokens: Mapping[str, str]) -> int:
    """Rewrite every text file under root in place. Returns the number of files rewritten.
    The first read/write error aborts the walk; files already rewritten stay rewritten."""
    count = 0
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for name in sorted(filenames):
            if not is_text_file(name):
                continue
            path = Path(dirpath) / name
            content = path.read_text(encoding="utf-8")
            updated = substitute_text(content, tokens)
            if updated != content:
                path.write_text(updated, encoding="utf-8")
                count += 1
    return count


def replace_in_template_files(template: PathLike, target: PathLike, tokens: Mapping[str, str]) -> int:
    """Rewrite, under target, only the text files that exist in template.
    Anything else in target (node_modules, user files) is left untouched."""
    template, target = Path(template), Path(target)
    count = 0
    for dirpath, dirnames, filenames in os.walk(template):
        dirnames.sort()
        rel_dir = Path(dirpath).relative_to(template)
        for name in sorted(filenames):
            if not is_text_file(name):
                continue
            path = target / rel_dir / name
            content = path.read_text(encoding="utf-8")
            updated = substitute_text(content, tokens)
            if updated != content:
                path.write_text(updated, encoding="utf-8")
                count += 1
    return count


def find_unresolved_tokens(root: PathLike) -> List[Path]:
    """Text files under root (node_modules excluded) that still contain a {{TOKEN}} placeholder."""
    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if d != "node_modules"]
        for name in filenames:
            if not is_text_file(name):
                continue
            path = Path(dirpath) / name
            try:
                if TOKEN_PATTERN.search(path.read_text(encoding="utf-8")):
                    found.append(path)
            except (OSError, UnicodeDecodeError):
                continue
    return sorted(found)
