"""Tenscript: a tiny grammar describing how a fabric grows.

A tenscript reads ``'Name':<spin>:P<n>:<tree>:<mark>=<action>...`` where
only the name and the tree are required. For example::

    'Halo':L:(2,b(3,MA0),d(3,MA0)):0=join

The tree says how many twists to add on the top face of the current twist,
at what scale, which faces to mark and which faces to branch from. Marked
faces are collected once growth is over and handled by the mark's action.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from .errors import TenscriptError
from .model import Face, FaceAction, MarkAction, Spin, Twist

if TYPE_CHECKING:  # pragma: no cover
    from .builder import TensegrityBuilder

logger = logging.getLogger(__name__)

DEFAULT_PUSHES_PER_TWIST = 3

_NUMBER = re.compile(r"\d+(\.\d+)?")


@dataclass
class Mark:
    action: MarkAction
    scale: Optional[float] = None


@dataclass
class TenscriptNode:
    forward: int = 0
    scale: float = 100.0
    omni: bool = False
    marks: Dict[str, int] = field(default_factory=dict)
    subtrees: Dict[str, "TenscriptNode"] = field(default_factory=dict)


@dataclass
class Tenscript:
    name: str
    tree: TenscriptNode
    spin: Spin = Spin.LEFT
    pushes_per_twist: int = DEFAULT_PUSHES_PER_TWIST
    marks: Dict[int, Mark] = field(default_factory=dict)
    code: str = ""


class _Parser:
    def __init__(self, code: str):
        self.code = code
        self.position = 0

    def error(self, message: str) -> TenscriptError:
        return TenscriptError(message, self.code, self.position)

    def peek(self, offset: int = 0) -> str:
        at = self.position + offset
        return self.code[at] if at < len(self.code) else ""

    def expect(self, char: str) -> None:
        if self.peek() != char:
            raise self.error(f"expected {char!r}")
        self.position += 1

    def number(self) -> float:
        match = _NUMBER.match(self.code, self.position)
        if not match:
            raise self.error("expected a number")
        self.position = match.end()
        return float(match.group())

    def integer(self) -> int:
        value = self.number()
        if not value.is_integer():
            raise self.error("expected a whole number")
        return int(value)

    def word(self) -> str:
        start = self.position
        while self.peek().isalpha():
            self.position += 1
        return self.code[start : self.position]

    def tenscript(self) -> Tenscript:
        self.expect("'")
        end = self.code.find("'", self.position)
        if end < 0:
            raise self.error("unterminated name")
        name = self.code[self.position : end]
        self.position = end + 1
        spin = Spin.LEFT
        pushes = DEFAULT_PUSHES_PER_TWIST
        tree: Optional[TenscriptNode] = None
        marks: Dict[int, Mark] = {}
        while self.position < len(self.code):
            self.expect(":")
            char = self.peek()
            if char == "(":
                if tree is not None:
                    raise self.error("second tree")
                tree = self.tree(omni=False)
            elif char.isdigit():
                number = self.integer()
                self.expect("=")
                marks[number] = self.mark()
            elif char == "P":
                self.position += 1
                pushes = self.integer()
                if pushes < 3:
                    raise self.error("a twist needs at least three pushes")
            else:
                letters = self.word()
                try:
                    spin = Spin(letters)
                except ValueError:
                    self.position -= len(letters)
                    raise self.error(f"unknown spin {letters!r}") from None
        if tree is None:
            raise self.error("missing tree")
        return Tenscript(name, tree, spin, pushes, marks, self.code)

    def mark(self) -> Mark:
        start = self.position
        action = self.word()
        try:
            mark_action = MarkAction(action)
        except ValueError:
            self.position = start
            raise self.error(f"unknown mark action {action!r}") from None
        scale = self.number() if self.peek().isdigit() else None
        return Mark(mark_action, scale)

    def tree(self, omni: bool) -> TenscriptNode:
        self.expect("(")
        node = TenscriptNode(omni=omni)
        forward_seen = False
        while self.peek() != ")":
            char, after = self.peek(), self.peek(1)
            if char == "":
                raise self.error("unclosed tree")
            if char.isdigit():
                if forward_seen:
                    raise self.error("second forward count")
                node.forward = self.integer()
                forward_seen = True
            elif char.isalpha() and after == "(":
                self.position += 1
                if char in node.subtrees:
                    raise self.error(f"second branch on face {char!r}")
                node.subtrees[char] = self.tree(node.omni)
            elif char == "S":
                self.position += 1
                node.scale = self.number()
            elif char == "O":
                self.position += 1
                node.omni = True
            elif char == "M":
                self.position += 1
                face_name = self.peek()
                if not face_name.isalpha():
                    raise self.error("expected a face name")
                self.position += 1
                node.marks[face_name] = self.integer()
            else:
                raise self.error(f"unexpected {char!r}")
            if self.peek() == ",":
                self.position += 1
            elif self.peek() != ")":
                raise self.error("expected ',' or ')'")
        self.expect(")")
        return node


def parse_tenscript(code: str) -> Tenscript:
    """Parse tenscript text, raising :class:`TenscriptError` when malformed."""

    return _Parser(code.strip()).tenscript()


@dataclass(eq=False)
class Bud:
    """Pending growth: a tree still to be grown from ``face`` of ``twist``."""

    builder: "TensegrityBuilder"
    tree: TenscriptNode
    twist: Twist
    face: Face
    marks: Dict[int, Mark]

    def step(self) -> List["Bud"]:
        """Do one unit of work and return the buds that follow it."""

        tree = self.tree
        if tree.forward > 0:
            twist = self.builder.create_twist_on(self.face, tree.scale, tree.omni)
            remaining = replace(tree, forward=tree.forward - 1)
            return [Bud(self.builder, remaining, twist, twist.faces[-1], self.marks)]
        for face_name, mark in tree.marks.items():
            self.twist.face(face_name).mark = mark
        return [
            Bud(self.builder, subtree, self.twist, self.twist.face(face_name), self.marks)
            for face_name, subtree in tree.subtrees.items()
        ]


def execute(buds: Sequence[Bud]) -> List[Bud]:
    """Advance every bud one step; an empty result means growth is over."""

    following: List[Bud] = []
    for bud in buds:
        following.extend(bud.step())
    return following


class FaceStrategy:
    def __init__(self, faces: List[Face], mark: Mark, builder: "TensegrityBuilder"):
        self.faces = faces
        self.mark = mark
        self.builder = builder

    def execute(self) -> None:
        action = self.mark.action
        logger.info("%s on %d face(s)", action.value, len(self.faces))
        if action == MarkAction.SUBTREE:
            return
        if action == MarkAction.BASE_FACE:
            self.builder.face_to_origin(self.faces[0])
        elif action == MarkAction.JOIN_FACES:
            self.builder.create_radial_pulls(self.faces, FaceAction.JOIN, self.mark.scale)
        elif action == MarkAction.FACE_DISTANCE:
            self.builder.create_radial_pulls(self.faces, FaceAction.DISTANCE, self.mark.scale)
        elif action == MarkAction.ANCHOR:
            for face in self.faces:
                self.builder.tensegrity.create_face_anchor(face, self.mark.scale)


def face_strategies(
    faces: Sequence[Face], marks: Dict[int, Mark], builder: "TensegrityBuilder"
) -> List[FaceStrategy]:
    """One strategy per mark number carried by ``faces``.

    A mark with no action in ``marks`` seats a lone face on the origin and
    joins two or more.
    """

    collated: Dict[int, List[Face]] = {}
    for face in faces:
        if face.mark is not None:
            collated.setdefault(face.mark, []).append(face)
    strategies = []
    for number, marked in collated.items():
        mark = marks.get(number)
        if mark is None:
            mark = Mark(MarkAction.BASE_FACE if len(marked) == 1 else MarkAction.JOIN_FACES)
        strategies.append(FaceStrategy(marked, mark, builder))
    return strategies


__all__ = [
    "DEFAULT_PUSHES_PER_TWIST",
    "Mark",
    "TenscriptNode",
    "Tenscript",
    "parse_tenscript",
    "Bud",
    "execute",
    "FaceStrategy",
    "face_strategies",
]
