"""Project-wide defaults for markclip.

Plain module constants, read at call time by the components that need them.
Per-export switches (embed images, metadata header, forced parser) live in
:class:`markclip.items.ExportOptions` instead.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Image embedding
# ---------------------------------------------------------------------------
EMBED_TIMEOUT_MS = 8_000
EMBED_MAX_BYTES = 5 * 1024 * 1024  # 5 MiB
EMBED_ALLOWED_MIME = r"^image/"
EMBED_USE_CREDENTIALS = True

# Sent with every image request; servers that sniff for browsers otherwise
# answer with HTML error pages.
EMBED_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)

# ---------------------------------------------------------------------------
# Forced section expansion (interactive lesson pages)
# ---------------------------------------------------------------------------
EXPANSION_SECTION_TIMEOUT = 2.0  # seconds, per section
EXPANSION_POLL_INTERVAL = 0.08  # seconds

# ---------------------------------------------------------------------------
# Code blocks
# ---------------------------------------------------------------------------
CODE_TAB_WIDTH = 4

# Synonyms collapsed to one canonical fence language.
LANGUAGE_ALIASES: dict[str, str] = {
    "shell-session": "console",
    "shellsession": "console",
    "sh-session": "console",
    "terminal": "console",
    "sh": "bash",
    "shell": "bash",
    "zsh": "bash",
    "py": "python",
    "js": "javascript",
    "ts": "typescript",
    "yml": "yaml",
}

# ---------------------------------------------------------------------------
# Parser registry diagnostics
# ---------------------------------------------------------------------------
# Set to "1" to log every resolution trace at INFO level.
DEBUG_PARSERS_ENV = "MARKCLIP_DEBUG_PARSERS"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
