"""Shared utilities for checking external tool dependencies and their versions."""

import re
import subprocess


def parse_version_tuple(version_str: str) -> tuple[int, ...]:
    """Parse a version string like '6.1.1' or '7.0' into a tuple of ints."""
    return tuple(int(x) for x in version_str.split("."))


def parse_ffmpeg_version(output: str) -> str | None:
    """Extract the release number from `ffmpeg -version` output.

    Handles 'ffmpeg version 6.1.1-3ubuntu5 ...' and 'ffmpeg version n7.0 ...'.
    Git builds ('ffmpeg version N-113176-g...') have no release number.
    """
    match = re.search(r"ffmpeg version n?(\d+(?:\.\d+)+)", output)
    return match.group(1) if match else None


def check_ffmpeg(min_version: tuple[int, ...] = (4,)) -> str:
    """Verify ffmpeg is available and recent enough.

    Returns:
        The detected version string, or "unknown" for git builds.

    Raises:
        RuntimeError: If ffmpeg is not found or its version is too old.
    """
    try:
        result = subprocess.run(
            ["ffmpeg", "-hide_banner", "-version"], capture_output=True, text=True, timeout=5, check=False,
        )
    except FileNotFoundError:
        raise RuntimeError("Required tool not found: ffmpeg")

    version_str = parse_ffmpeg_version(result.stdout + result.stderr)
    if version_str is None:
        if "ffmpeg version" not in result.stdout:
            raise RuntimeError(f"Could not parse ffmpeg version from output: {(result.stdout + result.stderr).strip()[:200]}")
        return "unknown"

    if parse_version_tuple(version_str) < min_version:
        raise RuntimeError(
            f"ffmpeg version {version_str} is not supported. "
            f"Required: >= {'.'.join(map(str, min_version))}"
        )

    return version_str
