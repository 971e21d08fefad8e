"""Lifecycle stages of a fabric and the side effects of moving between them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, FrozenSet

from .errors import TransitionError
from .model import Stage
from .optimizer import adjusted_stiffness

if TYPE_CHECKING:  # pragma: no cover
    from .tensegrity import Tensegrity

logger = logging.getLogger(__name__)

TRANSITIONS: Dict[Stage, FrozenSet[Stage]] = {
    Stage.GROWING: frozenset({Stage.SHAPING}),
    Stage.SHAPING: frozenset({Stage.SLACK, Stage.PRETENSING}),
    Stage.SLACK: frozenset({Stage.SHAPING, Stage.PRETENSING}),
    Stage.PRETENSING: frozenset({Stage.PRETENST}),
    Stage.PRETENST: frozenset({Stage.SLACK}),
}


@dataclass(frozen=True)
class LifeTransition:
    stage: Stage
    adopt_lengths: bool = False
    strain_to_stiffness: bool = False


class Life:
    """Immutable token wrapping the current stage of a tensegrity."""

    def __init__(self, tensegrity: "Tensegrity", stage: Stage):
        self._tensegrity = tensegrity
        self._stage = stage

    @property
    def stage(self) -> Stage:
        return self._stage

    def __repr__(self) -> str:
        return f"Life({self._stage.name})"

    def with_stage(
        self, stage: Stage, adopt_lengths: bool = False, strain_to_stiffness: bool = False
    ) -> "Life":
        return self.execute_transition(LifeTransition(stage, adopt_lengths, strain_to_stiffness))

    def execute_transition(self, tx: LifeTransition) -> "Life":
        """Perform the side effects of ``tx`` and return the new life.

        A request for the current stage returns ``self`` untouched.
        """

        if tx.stage == self._stage:
            return self
        if tx.stage not in TRANSITIONS[self._stage]:
            raise TransitionError(self._stage, tx.stage)
        if self._stage == Stage.SHAPING and tx.stage == Stage.SLACK:
            if tx.adopt_lengths:
                self._settle_shape()
        elif self._stage == Stage.PRETENST and tx.stage == Stage.SLACK:
            if tx.strain_to_stiffness:
                stiffnesses, linear_densities = adjusted_stiffness(self._tensegrity)
                self._tensegrity.engine.set_stiffnesses(stiffnesses, linear_densities)
            elif tx.adopt_lengths:
                self._tensegrity.engine.adopt_lengths()
                self._save()
        logger.info("life %s -> %s", self._stage.name, tx.stage.name)
        return Life(self._tensegrity, tx.stage)

    def _settle_shape(self) -> None:
        tensegrity = self._tensegrity
        tensegrity.engine.adopt_lengths()
        if tensegrity.face_anchors:
            tensegrity.remove_face_anchors()
            tensegrity.engine.set_altitude(0.0)
        for complex_ in list(tensegrity.pull_complexes):
            tensegrity.remove_pull_complex(complex_)
        self._save()

    def _save(self) -> None:
        self._tensegrity.slack_snapshot = self._tensegrity.engine.snapshot()


__all__ = ["TRANSITIONS", "LifeTransition", "Life"]
