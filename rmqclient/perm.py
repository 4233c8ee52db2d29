"""Queue permission bits."""

PERM_PRIORITY = 0x1 << 3
PERM_READ = 0x1 << 2
PERM_WRITE = 0x1 << 1
PERM_INHERIT = 0x1 << 0


def queue_is_readable(perm: int) -> bool:
    return perm & PERM_READ == PERM_READ


def queue_is_writeable(perm: int) -> bool:
    return perm & PERM_WRITE == PERM_WRITE


def queue_is_inherited(perm: int) -> bool:
    return perm & PERM_INHERIT == PERM_INHERIT


def perm_to_string(perm: int) -> str:
    """Render as three flags, e.g. ``RW-``."""
    return "".join(
        (
            "R" if queue_is_readable(perm) else "-",
            "W" if queue_is_writeable(perm) else "-",
            "X" if queue_is_inherited(perm) else "-",
        )
    )