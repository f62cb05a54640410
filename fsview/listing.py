"""Filtering and ordering of directory listings.

Hidden-prefix entries are removed from every view. Without a search term
the listing is ordered directories first, then by name; a search keeps
the server's order and only narrows it down.
"""

import unicodedata
from collections.abc import Iterable

from pydantic import BaseModel, Field

from fsview.models import HIDDEN_PREFIX, ROOT_PATH, Entry, is_hidden_name

__all__ = [
    "HIDDEN_PREFIX",
    "is_hidden_name",
    "drop_hidden",
    "name_sort_key",
    "filter_and_sort",
    "ListingView",
    "build_listing_view",
    "display_path",
    "format_file_size",
]

_SIZE_UNITS = ["B", "KB", "MB", "GB", "TB"]


def drop_hidden(entries: Iterable[Entry]) -> list[Entry]:
    """Return the entries whose name does not start with the hidden prefix."""
    return [entry for entry in entries if not is_hidden_name(entry.name)]


# Root collation order of the non-alphanumeric ASCII characters
_PUNCTUATION_ORDER = "_-,;:!?.'\"()[]{}@*/\\&#%`^+<=>|~$"
_PUNCTUATION_RANK = {ch: rank for rank, ch in enumerate(_PUNCTUATION_ORDER)}

_SPACE, _PUNCT, _DIGIT, _LETTER = range(4)


def _primary_weight(ch: str) -> tuple[int, int]:
    if ch.isspace():
        return _SPACE, ord(ch)
    if ch.isdigit():
        return _DIGIT, ord(ch)
    if ch.isalpha():
        return _LETTER, ord(ch)
    return _PUNCT, _PUNCTUATION_RANK.get(ch, len(_PUNCTUATION_ORDER) + ord(ch))


def name_sort_key(name: str) -> tuple[tuple[tuple[int, int], ...], str, str]:
    """Locale-style collation key for a file name.

    Compares base characters first (accents and case ignored), ranking
    whitespace lowest and letters highest, with punctuation and digits
    between them. Ties are broken by accents, then by case with
    lowercase ordered before uppercase.
    """
    decomposed = unicodedata.normalize("NFKD", name)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()
    primary = tuple(_primary_weight(ch) for ch in base)
    return (primary, name.casefold(), name.swapcase())


def _matches(entry: Entry, needle: str) -> bool:
    return needle in entry.name.lower()


def filter_and_sort(entries: Iterable[Entry], search: str | None = None) -> list[Entry]:
    """Apply visibility rules and ordering to a listing.

    Args:
        entries: Entries in server order.
        search: Optional case-insensitive substring. A blank term counts
            as no search.

    Returns:
        The entries to display. An empty list means "empty directory"
        (or no match), never an error.
    """
    visible = drop_hidden(entries)
    if search and search.strip():
        needle = search.lower()
        return [entry for entry in visible if _matches(entry, needle)]
    return sorted(visible, key=lambda entry: (not entry.is_dir, name_sort_key(entry.name)))


def display_path(path: str) -> str:
    """Render a relative path for display ("." is shown as "/")."""
    if path in ("", ROOT_PATH):
        return "/"
    return "/" + path.strip("/")


def format_file_size(size: int) -> str:
    """Format a byte count with 1024-based units, e.g. ``1.5 KB``."""
    if size <= 0:
        return "0 B"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[unit]}"


class ListingView(BaseModel):
    """A listing ready for display.

    Attributes:
        path: Directory the listing belongs to.
        entries: Filtered and ordered entries.
        search: The search term applied, if any.
        error: Why the listing could not be shown, if it could not.
    """

    path: str = ROOT_PATH
    entries: list[Entry] = Field(default_factory=list)
    search: str | None = None
    error: str | None = None

    @property
    def is_empty(self) -> bool:
        """Whether there is nothing to show (empty directory or no match)."""
        return not self.entries

    @property
    def is_search(self) -> bool:
        return bool(self.search and self.search.strip())

    @property
    def display_path(self) -> str:
        return display_path(self.path)

    @property
    def names(self) -> list[str]:
        return [entry.name for entry in self.entries]


def build_listing_view(
    path: str,
    entries: Iterable[Entry],
    search: str | None = None,
    error: str | None = None,
) -> ListingView:
    """Filter and order ``entries`` into a ListingView for ``path``."""
    return ListingView(
        path=path,
        entries=filter_and_sort(entries, search),
        search=search if search and search.strip() else None,
        error=error,
    )
