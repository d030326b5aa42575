"""
Core constants — **Single Source of Truth** for project-wide magic numbers.

Any business rule that references a numeric limit, a MIME whitelist or a
well-known role name should import it from here instead of hardcoding.
This avoids drift between the ``files`` and ``reports`` apps, which both
depend on the same upload limits.
"""

# ── Staged uploads ──────────────────────────────────────────────────
# Hard ceiling for a single uploaded photo.
MAX_UPLOAD_SIZE_BYTES: int = 5 * 1024 * 1024  # 5 MiB

ALLOWED_UPLOAD_MIME_TYPES: tuple[str, ...] = (
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
)

# Staged files that are not promoted within this window are swept.
STAGED_FILE_TTL_HOURS: int = 24

STAGED_KEY_PREFIX: str = "temp"

# ── Report photos ───────────────────────────────────────────────────
MIN_PHOTOS_PER_REPORT: int = 1
MAX_PHOTOS_PER_REPORT: int = 3

# ── Well-known role names ───────────────────────────────────────────
# Role names are admin-editable data; these two carry workflow meaning.
# Matching is substring-based so variants such as
# "Senior Public Relations Officer" are honoured.
PR_OFFICER_ROLE: str = "Public Relations Officer"
EXTERNAL_MAINTAINER_ROLE: str = "External Maintainer"
