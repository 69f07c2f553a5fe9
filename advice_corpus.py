"""
Advice corpus: a read-only tree of coding advice loaded from a heading/bullet
Markdown document.

Document layout:

    # Category
    Optional prose describing the category.
    - **Entry title**: description with `code_refs`
      - sub-bullets and indented lines continue the description
    ## Subcategory
    - **Another entry** - text

Usage:
    corpus = AdviceCorpus.load_file("python_coding_advice.md")
    corpus.list_categories("OOP")
    corpus.search("decorator")
"""
import io
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "/"
MAX_DEPTH = 2
DEFAULT_SOURCE = Path(__file__).parent / "python_coding_advice.md"

HEADING_RE = re.compile(r"^(#+)(?:[ \t]+(.*?))?[ \t]*$")
BULLET_RE = re.compile(r"^([ \t]*)[-*+](?:[ \t]+(.*))?$")
BOLD_LEAD_RE = re.compile(r"^\*\*(.+?)\*\*[ \t]*(?:[:\-–—][ \t]*)?(.*)$")
CODE_REF_RE = re.compile(r"`([^`]+)`")
FENCE = "```"
BOM = "\ufeff"


class AdviceCorpusError(Exception):
    """Base class for advice corpus errors"""
    pass


class ParseError(AdviceCorpusError):
    """Raised when the source document is malformed or nested inconsistently"""

    def __init__(self, message: str, line: Optional[int] = None):
        self.message = message
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class NotFoundError(AdviceCorpusError, LookupError):
    """Raised when a category path does not exist"""
    pass


@dataclass(frozen=True)
class Entry:
    """One piece of advice"""
    title: str
    description: str = ""
    code_refs: Tuple[str, ...] = ()
    category: str = ""
    examples: Tuple[str, ...] = ()

    def matches(self, needle: str) -> bool:
        """Case-insensitive substring match over title and description.

        `needle` must already be casefolded.
        """
        return needle in self.title.casefold() or needle in self.description.casefold()

    def to_dict(self) -> Dict:
        return {
            "title": self.title,
            "description": self.description,
            "code_refs": list(self.code_refs),
            "category": self.category,
            "examples": list(self.examples),
        }


@dataclass(frozen=True)
class Category:
    """A named node of the advice hierarchy"""
    name: str
    path: str = ""
    description: str = ""
    children: Tuple["Category", ...] = ()
    entries: Tuple[Entry, ...] = ()

    def child(self, name: str) -> Optional["Category"]:
        for child in self.children:
            if child.name == name:
                return child
        return None

    def walk_entries(self) -> Iterator[Entry]:
        """Yield own entries, then each child's, which is document order."""
        yield from self.entries
        for child in self.children:
            yield from child.walk_entries()

    def to_dict(self, include_entries: bool = True) -> Dict:
        data = {
            "name": self.name,
            "path": self.path,
            "description": self.description,
            "children": [child.name for child in self.children],
            "entry_count": len(self.entries),
        }
        if include_entries:
            data["entries"] = [entry.to_dict() for entry in self.entries]
        return data


# ============================================================================
# PARSER
# ============================================================================

@dataclass
class _EntryDraft:
    title: str
    lines: List[str] = field(default_factory=list)
    examples: List[str] = field(default_factory=list)


@dataclass
class _CategoryDraft:
    name: str
    path: str
    prose: List[str] = field(default_factory=list)
    children: List["_CategoryDraft"] = field(default_factory=list)
    entries: List[_EntryDraft] = field(default_factory=list)

    def freeze(self) -> Category:
        entries = tuple(_freeze_entry(draft, self.path) for draft in self.entries)
        return Category(
            name=self.name,
            path=self.path,
            description="\n".join(self.prose),
            children=tuple(child.freeze() for child in self.children),
            entries=entries,
        )


def _freeze_entry(draft: _EntryDraft, category_path: str) -> Entry:
    description = "\n".join(line for line in draft.lines if line)
    refs: List[str] = []
    for token in CODE_REF_RE.findall(f"{draft.title}\n{description}"):
        token = token.strip()
        if token and token not in refs:
            refs.append(token)
    return Entry(
        title=draft.title,
        description=description,
        code_refs=tuple(refs),
        category=category_path,
        examples=tuple(draft.examples),
    )


def _split_entry_text(text: str) -> Tuple[str, str]:
    """Split bullet text into (title, description)."""
    match = BOLD_LEAD_RE.match(text)
    if not match:
        return text, ""
    title = match.group(1).strip().rstrip(":").strip()
    return title, match.group(2).strip()


class _Parser:
    """Single-pass line parser building mutable drafts"""

    def __init__(self, text: str):
        self.lines = text.splitlines()
        self.root = _CategoryDraft(name="", path="")
        self.stack: List[_CategoryDraft] = [self.root]
        self.entry: Optional[_EntryDraft] = None
        self.fence: Optional[List[str]] = None
        self.fence_line = 0

    def parse(self) -> Category:
        for number, raw in enumerate(self.lines, start=1):
            self._feed(number, raw.rstrip())
        if self.fence is not None:
            raise ParseError("unterminated code fence", self.fence_line)
        return self.root.freeze()

    def _feed(self, number: int, line: str) -> None:
        stripped = line.strip()

        if self.fence is not None:
            if stripped.startswith(FENCE):
                if self.entry is not None:
                    self.entry.examples.append("\n".join(self.fence))
                self.fence = None
            else:
                self.fence.append(line)
            return

        if stripped.startswith(FENCE):
            self.fence = []
            self.fence_line = number
            return

        if not stripped:
            return

        if line.startswith("#"):
            self._heading(number, line)
            return

        bullet = BULLET_RE.match(line)
        if bullet:
            indent, text = bullet.groups()
            text = (text or "").strip()
            if indent:
                self._sub_bullet(number, text)
            else:
                self._bullet(number, text)
            return

        if line[0] in " \t" and self.entry is not None:
            self.entry.lines.append(stripped)
            return

        # Unindented prose closes the entry and describes the category.
        self.entry = None
        if len(self.stack) > 1:
            self.stack[-1].prose.append(stripped)

    def _heading(self, number: int, line: str) -> None:
        match = HEADING_RE.match(line)
        if not match or not match.group(2):
            raise ParseError(f"malformed heading {line!r}", number)
        level = len(match.group(1))
        name = match.group(2).strip()
        if level > MAX_DEPTH:
            raise ParseError(
                f"heading level {level} exceeds the {MAX_DEPTH}-level hierarchy", number
            )
        if level > len(self.stack):
            raise ParseError(f"level {level} heading {name!r} has no parent heading", number)
        if PATH_SEPARATOR in name:
            raise ParseError(f"category name {name!r} contains {PATH_SEPARATOR!r}", number)

        del self.stack[level:]
        parent = self.stack[-1]
        if any(child.name == name for child in parent.children):
            raise ParseError(f"duplicate category {name!r}", number)

        path = f"{parent.path}{PATH_SEPARATOR}{name}" if parent.path else name
        category = _CategoryDraft(name=name, path=path)
        parent.children.append(category)
        self.stack.append(category)
        self.entry = None
        logger.debug(f"Parsed category {path!r} at line {number}")

    def _bullet(self, number: int, text: str) -> None:
        if len(self.stack) == 1:
            raise ParseError("bullet appears before any heading", number)
        if not text:
            raise ParseError("empty bullet", number)
        title, description = _split_entry_text(text)
        if not title:
            raise ParseError(f"bullet {text!r} has an empty title", number)
        self.entry = _EntryDraft(title=title, lines=[description])
        self.stack[-1].entries.append(self.entry)

    def _sub_bullet(self, number: int, text: str) -> None:
        if len(self.stack) == 1:
            raise ParseError("sub-bullet appears before any heading", number)
        if self.entry is None:
            raise ParseError("sub-bullet appears before any entry", number)
        if text:
            self.entry.lines.append(text)


# ============================================================================
# CORPUS
# ============================================================================

Source = Union[str, Path, io.TextIOBase]


class AdviceCorpus:
    """
    Immutable collection of advice categories and entries.

    Built once by load(); every query is read-only, so one instance can be
    shared between threads without locking.
    """

    def __init__(self, root: Category, source_name: str = "<string>"):
        self._root = root
        self.source_name = source_name

    @classmethod
    def load(cls, source: Source) -> "AdviceCorpus":
        """
        Parse a heading/bullet document.

        Args:
            source: Document text, a Path to read, or an open text file

        Raises:
            ParseError: Malformed headings or inconsistent nesting
        """
        if isinstance(source, Path):
            return cls.load_file(source)
        if isinstance(source, str):
            return cls._from_text(source, "<string>")
        return cls._from_text(source.read(), str(getattr(source, "name", "<stream>")))

    @classmethod
    def load_file(cls, path: Union[str, Path]) -> "AdviceCorpus":
        path = Path(path)
        with open(path, "r", encoding="utf-8-sig") as f:
            return cls._from_text(f.read(), str(path))

    @classmethod
    def _from_text(cls, text: str, source_name: str) -> "AdviceCorpus":
        if text.startswith(BOM):
            text = text[len(BOM):]
        corpus = cls(_Parser(text).parse(), source_name=source_name)
        logger.info(
            f"AdviceCorpus: Loaded {len(corpus)} entries in "
            f"{len(corpus.categories)} categories from {source_name}"
        )
        return corpus

    @property
    def root(self) -> Category:
        return self._root

    @property
    def categories(self) -> Tuple[Category, ...]:
        """Top-level categories in document order"""
        return self._root.children

    def get_category(self, path: Optional[str]) -> Category:
        """Return the category at a slash-separated path ("" is the root)."""
        node = self._root
        for name in _split_path(path):
            child = node.child(name)
            if child is None:
                raise NotFoundError(f"Category not found: {path!r}")
            node = child
        return node

    def list_categories(self, path_prefix: Optional[str] = "") -> Tuple[Category, ...]:
        """Immediate children under a path, empty when it has none."""
        return self.get_category(path_prefix).children

    def entries(self, path: Optional[str] = "") -> Tuple[Entry, ...]:
        """Every entry at or below a path, in document order."""
        return tuple(self.get_category(path).walk_entries())

    def search(self, keyword: str, within: Optional[str] = None) -> Tuple[Entry, ...]:
        """
        Case-insensitive substring search over entry titles and descriptions.

        Returns matches in document order; no match is an empty tuple.
        """
        if not keyword or not keyword.strip():
            return ()
        needle = keyword.casefold()
        scope = self._root if within is None else self.get_category(within)
        return tuple(entry for entry in scope.walk_entries() if entry.matches(needle))

    def find_code_ref(self, token: str) -> Tuple[Entry, ...]:
        """Entries whose code references contain `token` exactly."""
        token = (token or "").strip().strip("`").strip()
        if not token:
            return ()
        return tuple(entry for entry in self if token in entry.code_refs)

    def to_dict(self) -> Dict:
        return {
            "source": self.source_name,
            "entry_count": len(self),
            "categories": [_category_tree(c) for c in self.categories],
        }

    def __iter__(self) -> Iterator[Entry]:
        return self._root.walk_entries()

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __eq__(self, other) -> bool:
        if not isinstance(other, AdviceCorpus):
            return NotImplemented
        return self._root == other._root

    def __hash__(self) -> int:
        return hash(self._root)

    def __repr__(self) -> str:
        return f"AdviceCorpus(source={self.source_name!r}, entries={len(self)})"


def _category_tree(category: Category) -> Dict:
    data = category.to_dict()
    data["children"] = [_category_tree(child) for child in category.children]
    return data


def _split_path(path: Optional[str]) -> List[str]:
    if path is None or not path.strip(PATH_SEPARATOR + " \t"):
        return []
    names = [name.strip() for name in path.strip().strip(PATH_SEPARATOR).split(PATH_SEPARATOR)]
    if any(not name for name in names):
        raise NotFoundError(f"Category not found: {path!r}")
    return names


def load_corpus(path: Optional[Union[str, Path]] = None) -> AdviceCorpus:
    """Load the corpus from `path`, or from the bundled advice document."""
    return AdviceCorpus.load_file(path if path is not None else DEFAULT_SOURCE)
