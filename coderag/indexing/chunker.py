"""
Code chunking: fixed-size line windows plus structural (function/class) blocks.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Pattern, Protocol, Sequence

from coderag.config import settings

MAX_CHUNK_SIZE = settings.max_chunk_size
CHUNK_OVERLAP = settings.chunk_overlap
AVERAGE_LINE_CHARS = 50  # converts the character overlap into a line count

# Words the loose C-family patterns pick up from statements like `if (x) {`.
STATEMENT_KEYWORDS = frozenset(
    {
        "if",
        "else",
        "for",
        "foreach",
        "while",
        "do",
        "switch",
        "case",
        "catch",
        "try",
        "return",
        "new",
        "throw",
        "typeof",
        "sizeof",
        "delete",
        "await",
        "using",
        "lock",
        "synchronized",
    }
)
# Captured "names" that are really keywords, e.g. `function (x) {`.
NON_NAMES = STATEMENT_KEYWORDS | {"function"}


@dataclass
class Chunk:
    content: str
    start_line: int
    end_line: int
    kind: str = "chunk"
    name: str | None = None

    @property
    def lines(self) -> tuple[int, int]:
        return self.start_line, self.end_line


@dataclass(frozen=True)
class Boundary:
    kind: str  # "function" or "class"
    name: str
    start: int  # 0-based line index of the declaration
    end: int  # 0-based inclusive


class StructureStrategy(Protocol):
    def detect_boundaries(self, lines: Sequence[str]) -> List[Boundary]:
        ...


def split_lines(content: str) -> List[str]:
    lines = content.split("\n")
    if len(lines) > 1 and lines[-1] == "":
        lines.pop()
    return lines


def _first_name(match: re.Match) -> str:
    for group in match.groups():
        if group:
            return group
    return "anonymous"


def _leading_word(line: str) -> str:
    stripped = line.strip()
    return stripped.split(None, 1)[0] if stripped else ""


class BraceBlockStrategy:
    """
    Regex detection of declarations; the block runs until the braces opened on
    the declaration line are balanced again. Unbalanced braces run to end of file.
    """

    def __init__(self, function_pattern: str, class_pattern: str) -> None:
        self.function_pattern: Pattern[str] = re.compile(function_pattern)
        self.class_pattern: Pattern[str] = re.compile(class_pattern)

    def detect_boundaries(self, lines: Sequence[str]) -> List[Boundary]:
        boundaries: List[Boundary] = []
        for idx, line in enumerate(lines):
            if _leading_word(line) in STATEMENT_KEYWORDS:
                continue

            function_match = self.function_pattern.search(line)
            if function_match:
                name = _first_name(function_match)
                if name not in NON_NAMES:
                    boundaries.append(Boundary("function", name, idx, self.block_end(lines, idx)))

            class_match = self.class_pattern.search(line)
            if class_match:
                boundaries.append(Boundary("class", _first_name(class_match), idx, self.block_end(lines, idx)))
        return boundaries

    @staticmethod
    def block_end(lines: Sequence[str], start: int) -> int:
        depth = lines[start].count("{") - lines[start].count("}")
        end = start

        # Allman style: opening brace alone on the following line.
        if depth <= 0 and "{" not in lines[start] and start + 1 < len(lines):
            if lines[start + 1].strip().startswith("{"):
                end = start + 1
                depth = lines[end].count("{") - lines[end].count("}")

        idx = end + 1
        while idx < len(lines) and depth > 0:
            depth += lines[idx].count("{") - lines[idx].count("}")
            end = idx
            idx += 1
        return end


class IndentBlockStrategy:
    """
    Brace-less languages: the block is every following line indented deeper
    than the declaration. Blank lines never end a block.
    """

    def __init__(self, function_pattern: str, class_pattern: str, closing_keyword: str | None = None) -> None:
        self.function_pattern: Pattern[str] = re.compile(function_pattern)
        self.class_pattern: Pattern[str] = re.compile(class_pattern)
        self.closing_keyword = closing_keyword

    def detect_boundaries(self, lines: Sequence[str]) -> List[Boundary]:
        boundaries: List[Boundary] = []
        for idx, line in enumerate(lines):
            function_match = self.function_pattern.search(line)
            if function_match:
                boundaries.append(Boundary("function", _first_name(function_match), idx, self.block_end(lines, idx)))
            class_match = self.class_pattern.search(line)
            if class_match:
                boundaries.append(Boundary("class", _first_name(class_match), idx, self.block_end(lines, idx)))
        return boundaries

    def block_end(self, lines: Sequence[str], start: int) -> int:
        base_indent = _indent(lines[start])
        end = start

        # Multi-line signatures: stay inside until brackets balance.
        depth = _bracket_delta(lines[start])
        while depth > 0 and end + 1 < len(lines):
            end += 1
            depth += _bracket_delta(lines[end])

        idx = end + 1
        while idx < len(lines):
            line = lines[idx]
            if not line.strip():
                idx += 1
                continue
            if _indent(line) <= base_indent:
                if self.closing_keyword and line.strip() == self.closing_keyword and _indent(line) == base_indent:
                    end = idx
                break
            end = idx
            idx += 1
        return end


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip(" \t"))


def _bracket_delta(line: str) -> int:
    return sum(line.count(c) for c in "([{") - sum(line.count(c) for c in ")]}")


_JS_STRATEGY = BraceBlockStrategy(
    function_pattern=(
        r"(?:function\s*\*?\s*(\w+)"
        r"|(\w+)\s*[:=]\s*(?:async\s+)?(?:function\b|\([^)]*\)\s*=>)"
        r"|^\s*(?:(?:public|private|protected|static|async|get|set)\s+)*(\w+)\s*\([^)]*\)\s*(?::\s*[^{]+)?\{)"
    ),
    class_pattern=r"\bclass\s+(\w+)",
)

_JAVA_LIKE_STRATEGY = BraceBlockStrategy(
    function_pattern=(
        r"^\s*(?:(?:public|private|protected|internal|static|final|abstract|override|virtual"
        r"|synchronized|async|sealed|extern|unsafe)\s+)*[\w<>\[\],.?]+\s+(\w+)\s*\([^;]*$"
    ),
    class_pattern=(
        r"^\s*(?:(?:public|private|protected|internal|static|final|abstract|sealed|partial)\s+)*"
        r"(?:class|interface|enum|record|struct)\s+(\w+)"
    ),
)

_C_LIKE_STRATEGY = BraceBlockStrategy(
    function_pattern=r"^\s*(?:[\w:<>,]+[\s*&]+)+(\w+)\s*\([^;]*$",
    class_pattern=r"^\s*(?:class|struct)\s+(\w+)",
)

STRATEGIES: Dict[str, StructureStrategy] = {
    "javascript": _JS_STRATEGY,
    "typescript": _JS_STRATEGY,
    "java": _JAVA_LIKE_STRATEGY,
    "csharp": _JAVA_LIKE_STRATEGY,
    "cpp": _C_LIKE_STRATEGY,
    "c": _C_LIKE_STRATEGY,
    "python": IndentBlockStrategy(
        function_pattern=r"^\s*(?:async\s+)?def\s+(\w+)",
        class_pattern=r"^\s*class\s+(\w+)",
    ),
    "ruby": IndentBlockStrategy(
        function_pattern=r"^\s*def\s+(?:self\.)?(\w+[?!=]?)",
        class_pattern=r"^\s*(?:class|module)\s+([\w:]+)",
        closing_keyword="end",
    ),
    "go": BraceBlockStrategy(
        function_pattern=r"^\s*func\s+(?:\([^)]*\)\s*)?(\w+)",
        class_pattern=r"^\s*type\s+(\w+)\s+(?:struct|interface)\b",
    ),
    "rust": BraceBlockStrategy(
        function_pattern=r"^\s*(?:pub(?:\([^)]*\))?\s+)?(?:const\s+)?(?:async\s+)?(?:unsafe\s+)?fn\s+(\w+)",
        class_pattern=r"^\s*(?:pub(?:\([^)]*\))?\s+)?(?:struct|enum|trait)\s+(\w+)|^\s*impl(?:<[^>]*>)?\s+(?:[\w:]+\s+for\s+)?(\w+)",
    ),
    "php": BraceBlockStrategy(
        function_pattern=r"^\s*(?:(?:public|private|protected|static|abstract|final)\s+)*function\s+&?(\w+)",
        class_pattern=r"^\s*(?:(?:abstract|final)\s+)?(?:class|interface|trait)\s+(\w+)",
    ),
    "kotlin": BraceBlockStrategy(
        function_pattern=(
            r"^\s*(?:(?:public|private|protected|internal|override|suspend|inline|open)\s+)*"
            r"fun\s+(?:<[^>]*>\s*)?(?:[\w.]+\.)?(\w+)"
        ),
        class_pattern=(
            r"^\s*(?:(?:public|private|protected|internal|open|abstract|data|sealed|enum|inner)\s+)*"
            r"(?:class|interface|object)\s+(\w+)"
        ),
    ),
    "swift": BraceBlockStrategy(
        function_pattern=r"^\s*(?:(?:public|private|fileprivate|internal|open|static|class|override|mutating)\s+)*func\s+(\w+)",
        class_pattern=(
            r"^\s*(?:(?:public|private|fileprivate|internal|open|final)\s+)*"
            r"(?:class|struct|enum|protocol|extension)\s+(\w+)"
        ),
    ),
}

DEFAULT_STRATEGY_LANGUAGE = "javascript"


def register_strategy(language: str, strategy: StructureStrategy) -> None:
    STRATEGIES[language] = strategy


def get_strategy(language: str) -> StructureStrategy:
    return STRATEGIES.get(language, STRATEGIES[DEFAULT_STRATEGY_LANGUAGE])


def chunk_text(
    content: str,
    max_chunk_size: int = MAX_CHUNK_SIZE,
    overlap_size: int = CHUNK_OVERLAP,
) -> List[Chunk]:
    """
    Split text into line windows of about ``max_chunk_size`` characters.

    When a line would overflow the window, the window is flushed and the next
    one restarts ``overlap_size // 50`` lines earlier, so consecutive windows
    share a few lines and together cover every line of the input. The restarted
    window takes its overlap lines and the overflowing line without a size
    check, so a long line (together with the overlap before it) can leave a
    window larger than the limit.
    """
    lines = split_lines(content)
    overlap_lines = overlap_size // AVERAGE_LINE_CHARS
    chunks: List[Chunk] = []

    current = ""
    start = 0

    for idx, line in enumerate(lines):
        if len(current) + len(line) > max_chunk_size:
            if current.strip():
                chunks.append(Chunk(content=current.strip(), start_line=start + 1, end_line=idx))
            overlap_start = max(0, idx - overlap_lines)
            current = "\n".join(lines[overlap_start : idx + 1]) + "\n"
            start = overlap_start
        else:
            if not current:
                start = idx
            current += line + "\n"

    if current.strip():
        chunks.append(Chunk(content=current.strip(), start_line=start + 1, end_line=len(lines)))

    return chunks


def _fit_block(block: Sequence[str], max_chunk_size: int) -> List[str]:
    kept: List[str] = []
    size = 0
    for line in block:
        added = len(line) + (1 if kept else 0)
        if kept and size + added > max_chunk_size:
            break
        kept.append(line)
        size += added
    if size > max_chunk_size:
        kept = [kept[0][:max_chunk_size]]
    return kept


def extract_structural_chunks(
    content: str,
    language: str,
    max_chunk_size: int = MAX_CHUNK_SIZE,
) -> List[Chunk]:
    """
    Function and class blocks found by the language's strategy, in file order.

    Blocks larger than ``max_chunk_size`` keep only their leading whole lines;
    the windowed chunks still cover the remainder.
    """
    lines = split_lines(content)
    if not content.strip():
        return []

    chunks: List[Chunk] = []
    for boundary in get_strategy(language).detect_boundaries(lines):
        kept = _fit_block(lines[boundary.start : boundary.end + 1], max_chunk_size)
        text = "\n".join(kept)
        if not text.strip():
            continue
        chunks.append(
            Chunk(
                content=text,
                start_line=boundary.start + 1,
                end_line=boundary.start + len(kept),
                kind=boundary.kind,
                name=boundary.name,
            )
        )
    return chunks


__all__ = [
    "Chunk",
    "Boundary",
    "StructureStrategy",
    "BraceBlockStrategy",
    "IndentBlockStrategy",
    "STRATEGIES",
    "register_strategy",
    "get_strategy",
    "split_lines",
    "chunk_text",
    "extract_structural_chunks",
    "MAX_CHUNK_SIZE",
    "CHUNK_OVERLAP",
]
