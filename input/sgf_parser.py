"""Permissive SGF reader producing a list of :class:`~input.sgf_tree.GameTree`.

The grammar is the FF[4] one::

    Collection = GameTree+
    GameTree   = "(" Sequence GameTree* ")"
    Sequence   = Node+
    Node       = ";" Property*
    Property   = PropIdent PropValue+
    PropValue  = "[" raw text "]"

Real files deviate from it in many ways, and the reader tolerates the common
ones: a leading byte order mark, mail headers before the first ``(;``,
``(RN[..]...`` without the opening semicolon, ``GaMe[1]`` style identifiers,
unescaped ``]`` inside text values, ``()`` and sequences that continue after
their variations.  Each tolerance is reported as a warning through the
:class:`~monitoring.diagnostics.Diagnostics` channel; real syntax errors raise
:class:`~core.errors.SgfSyntaxError`.

Property values are kept exactly as written between the brackets, escapes
included.  Bytes are decoded with ``surrogateescape`` so that undecodable text
survives a parse/write round trip unchanged.
"""
from __future__ import annotations

import io
import sys
from typing import BinaryIO, List, Optional, Union

from core.errors import SgfSyntaxError
from input.sgf_tree import GameTree, Node, Property
from monitoring.diagnostics import Diagnostics

EOF = -1
CHUNK_SIZE = 65536
MAX_IDENT_LENGTH = 100

LPAREN = ord("(")
RPAREN = ord(")")
SEMI = ord(";")
LBRACKET = ord("[")
RBRACKET = ord("]")
BACKSLASH = ord("\\")
NEWLINE = ord("\n")

WHITESPACE = frozenset(b" \t\n\r\f\v")
INLINE_SPACE = frozenset(b" \t")
LINE_END = frozenset(b"\n\r")
BOM = (0xEF, 0xBB, 0xBF)

# Identifiers allowed to start a sequence that lacks its leading ';'.
BARE_SEQUENCE_IDENTS = ("RN", "RF", "N", "C")


def _is_upper(c: int) -> bool:
    return 0x41 <= c <= 0x5A


def _is_lower(c: int) -> bool:
    return 0x61 <= c <= 0x7A


def _is_letter(c: int) -> bool:
    return _is_upper(c) or _is_lower(c)


def _show(c: int) -> str:
    if c == EOF:
        return "end of input"
    if 0x20 < c < 0x7F:
        return f"'{chr(c)}'"
    return f"0x{c:02x}"


class ByteReader:
    """Chunked byte reader with an unbounded pushback stack.

    Tracks the current line number and byte offset; pushing a byte back
    rewinds both so error positions stay exact after look-ahead.
    """

    def __init__(self, stream: BinaryIO) -> None:
        self.stream = stream
        self._buf = b""
        self._pos = 0
        self._pushed: List[int] = []
        self.line = 1
        self.offset = 0

    def getc(self) -> int:
        if self._pushed:
            c = self._pushed.pop()
        else:
            if self._pos >= len(self._buf):
                self._buf = self.stream.read(CHUNK_SIZE)
                self._pos = 0
                if not self._buf:
                    return EOF
            c = self._buf[self._pos]
            self._pos += 1
        self.offset += 1
        if c == NEWLINE:
            self.line += 1
        return c

    def ungetc(self, c: int) -> None:
        if c == EOF:
            return
        self._pushed.append(c)
        self.offset -= 1
        if c == NEWLINE:
            self.line -= 1

    def getsym(self) -> int:
        """Return the next byte that is not whitespace."""
        c = self.getc()
        while c in WHITESPACE:
            c = self.getc()
        return c

    def peeksym(self) -> int:
        c = self.getsym()
        self.ungetc(c)
        return c


class SgfParser:
    """Recursive-descent reader for one input stream.

    Parameters
    ----------
    stream:
        Binary stream to read from.
    diagnostics:
        Channel receiving warnings; a fresh one is created when omitted.
    multi:
        Expect several games separated by arbitrary junk (mail archives,
        concatenated downloads).  Garbage skipping is repeated before each
        top-level tree, and with ``ignore_errors`` a broken game is reported
        and skipped instead of aborting the whole stream.
    keep_case:
        Keep lower-case letters in property identifiers instead of stripping
        them (``GaMe`` stays ``GaMe`` rather than becoming ``GM``).
    encoding:
        Encoding used to turn raw value bytes into text.
    """

    def __init__(
        self,
        stream: BinaryIO,
        diagnostics: Optional[Diagnostics] = None,
        *,
        multi: bool = False,
        keep_case: bool = False,
        encoding: str = "utf-8",
    ) -> None:
        self.reader = ByteReader(stream)
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.multi = multi
        self.keep_case = keep_case
        self.encoding = encoding

    # ------------------------------------------------------------------
    # Reporting helpers
    # ------------------------------------------------------------------
    def _error(self, message: str) -> SgfSyntaxError:
        return SgfSyntaxError(message, self.reader.line, self.reader.offset)

    def _warn(self, message: str, *args: object) -> None:
        self.diagnostics.warn(message, *args, line=self.reader.line)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    def parse(self) -> List[GameTree]:
        """Read the whole stream and return its top-level game trees."""
        self._skip_bom()
        self._skip_garbage()
        if self.reader.peeksym() == EOF:
            raise self._error("no game found")

        if not self.multi:
            trees = self._read_gametree_sequence()
            if not trees:
                raise self._error("empty game tree sequence")
            return trees

        collection: List[GameTree] = []
        while self.reader.peeksym() != EOF:
            with self.diagnostics.item():
                if self.reader.getsym() != LPAREN:
                    raise self._error("expected '(' to start a game")
                tree = self._read_gametree()
                if tree is not None:
                    collection.append(tree)
            self._skip_garbage()
        if not collection:
            raise self._error("empty game tree sequence")
        return collection

    # ------------------------------------------------------------------
    # Leading junk
    # ------------------------------------------------------------------
    def _skip_bom(self) -> None:
        r = self.reader
        seen: List[int] = []
        for expected in BOM:
            c = r.getsym() if not seen else r.getc()
            seen.append(c)
            if c != expected:
                for byte in reversed(seen):
                    r.ungetc(byte)
                return
        self._warn("skipped initial BOM")

    def _skip_garbage(self) -> None:
        """Advance to the next ``(;`` (or ``(`` plus an upper-case letter)."""
        r = self.reader
        warned = False
        while True:
            c = r.getsym()
            if c == EOF:
                return
            if c == LPAREN:
                d = r.getsym()
                if d == SEMI:
                    r.ungetc(d)
                    r.ungetc(LPAREN)
                    return
                if _is_upper(d):
                    r.ungetc(d)
                    if d == ord("T"):
                        # Nihon Ki-in: ( TE[...] RD[...] ;B[pd] ... )
                        self._warn("SGF2-style game without leading ';'")
                        r.ungetc(SEMI)
                    r.ungetc(LPAREN)
                    return
                r.ungetc(d)
            if not warned:
                self._warn("skipping initial garbage")
                warned = True

    # ------------------------------------------------------------------
    # Trees
    # ------------------------------------------------------------------
    def _read_gametree_sequence(self) -> List[GameTree]:
        r = self.reader
        trees: List[GameTree] = []
        while True:
            c = r.getsym()
            if c != LPAREN:
                r.ungetc(c)
                return trees
            tree = self._read_gametree()
            if tree is not None:
                trees.append(tree)

    def _read_gametree(self) -> Optional[GameTree]:
        """Read one tree after its ``(``; ``None`` for ``()``."""
        tree = self._read_baretree_sequence()
        if tree is None:
            self._warn("empty game tree () ignored")
        c = self.reader.getsym()
        if c != RPAREN:
            raise self._error(f"game tree does not end with ')' - got {_show(c)}")
        return tree

    def _read_baretree_sequence(self) -> Optional[GameTree]:
        c = self.reader.peeksym()
        if c == RPAREN:
            return None
        tree = self._read_baretree()
        c = self.reader.peeksym()
        if c == SEMI or _is_letter(c):
            self._warn("nonstandard nesting: node sequence continues after variations")
            extra = self._read_baretree_sequence()
            if extra is not None:
                tree.children.insert(0, extra)
        return tree

    def _read_baretree(self) -> GameTree:
        sequence = self._read_sequence()
        children = self._read_gametree_sequence()
        return GameTree(sequence, children)

    def _read_sequence(self) -> List[Node]:
        nodes = self._read_node_sequence()
        if nodes:
            return nodes
        if not _is_letter(self.reader.peeksym()):
            raise self._error("empty node sequence: '(' not followed by ';'")
        node = self._read_property_sequence()
        if node.properties[0].ident not in BARE_SEQUENCE_IDENTS:
            raise self._error(
                "empty node sequence: '(' not followed by ';' "
                "(and not by RN[], RF[], N[] or C[])"
            )
        return [node] + self._read_node_sequence()

    def _read_node_sequence(self) -> List[Node]:
        r = self.reader
        nodes: List[Node] = []
        c = r.getsym()
        while c == SEMI:
            nodes.append(self._read_property_sequence())
            c = r.getsym()
        r.ungetc(c)
        return nodes

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    def _read_property_sequence(self) -> Node:
        properties: List[Property] = []
        while _is_letter(self.reader.peeksym()):
            properties.append(self._read_property())
        return Node(properties)

    def _read_property(self) -> Property:
        ident = self._read_ident()
        values = self._read_values()
        if not values:
            raise self._error(f"missing property value for {ident}")
        return Property(ident, values)

    def _read_ident(self) -> str:
        r = self.reader
        kept = bytearray()
        full = bytearray()
        c = r.getsym()
        while _is_letter(c):
            full.append(c)
            if _is_upper(c) or self.keep_case:
                kept.append(c)
            c = r.getsym()
        r.ungetc(c)
        if not kept:
            raise self._error(f"property identifier '{full.decode('ascii')}' is lower case only")
        if len(kept) > MAX_IDENT_LENGTH:
            raise self._error("property identifier too long")
        return kept.decode("ascii")

    def _read_values(self) -> List[str]:
        r = self.reader
        values: List[str] = []
        c = r.getsym()
        while c == LBRACKET:
            values.append(self._read_value())
            c = r.getsym()
        r.ungetc(c)
        return values

    def _read_value(self) -> str:
        """Read a value body; the opening ``[`` has been consumed."""
        r = self.reader
        start_line = r.line
        buf = bytearray()
        while True:
            c = r.getc()
            if c == EOF:
                raise SgfSyntaxError("unterminated property value", start_line, r.offset)
            if c == RBRACKET:
                if self._bracket_closes_value():
                    break
                self._warn("unescaped ]")
                buf.append(c)
                continue
            buf.append(c)
            if c == BACKSLASH:
                c = r.getc()
                if c == EOF:
                    raise SgfSyntaxError("unterminated property value", start_line, r.offset)
                buf.append(c)
        return buf.decode(self.encoding, "surrogateescape")

    def _bracket_closes_value(self) -> bool:
        """Decide whether an unescaped ``]`` ends the current value.

        It does when, past any whitespace, the input ends or continues with
        ``;``, ``(``, ``)`` or ``[``.  After a run of letters the next
        character decides: ``]``, digits or punctuation on the same line mean
        the letters are text inside the value, anything else closes it.  The
        lookahead never crosses a line end, so a stray bracket in one game
        cannot pull the games after it into a value.  Everything looked at is
        pushed back.
        """
        r = self.reader
        consumed: List[int] = []

        c = r.getc()
        consumed.append(c)
        while c in WHITESPACE:
            c = r.getc()
            consumed.append(c)

        if c == EOF or c in (SEMI, LPAREN, RPAREN, LBRACKET):
            closes = True
        elif _is_letter(c):
            while _is_letter(c) or c in INLINE_SPACE:
                c = r.getc()
                consumed.append(c)
            closes = c == EOF or c in LINE_END or c in (SEMI, LPAREN, RPAREN, LBRACKET)
        else:
            closes = False

        for byte in reversed(consumed):
            r.ungetc(byte)
        return closes


# ----------------------------------------------------------------------
# Convenience wrappers
# ----------------------------------------------------------------------

def parse_stream(stream: BinaryIO, diagnostics: Optional[Diagnostics] = None, **options) -> List[GameTree]:
    """Parse SGF data from an open binary stream."""
    return SgfParser(stream, diagnostics, **options).parse()


def parse(data: Union[bytes, str], diagnostics: Optional[Diagnostics] = None, **options) -> List[GameTree]:
    """Parse SGF text given as ``bytes`` or ``str``."""
    if isinstance(data, str):
        data = data.encode(options.get("encoding", "utf-8"), "surrogateescape")
    return parse_stream(io.BytesIO(data), diagnostics, **options)


def parse_file(path: str, diagnostics: Optional[Diagnostics] = None, **options) -> List[GameTree]:
    """Parse the SGF file at ``path``; ``"-"`` reads standard input."""
    if path == "-":
        return parse_stream(sys.stdin.buffer, diagnostics, **options)
    with open(path, "rb") as f:
        return parse_stream(f, diagnostics, **options)


__all__ = ["ByteReader", "SgfParser", "parse", "parse_file", "parse_stream"]
