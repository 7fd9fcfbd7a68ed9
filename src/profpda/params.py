"""
Free-parameter layout for operator weight functions.

The parameter vector packs the coefficients of every estimated weight in a
fixed order:
    bvec = [b_0, b_1, ..., b_{m-1}, a_1, a_2, ...]

Weights with ``estimate=False`` take no room in ``bvec``. The layout table is
built once and shared by packing, penalty derivatives and gradient
accumulation.
"""

import numpy as np
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .fd import WeightFunction

HOMOGENEOUS = "homogeneous"
FORCING = "forcing"


@dataclass(frozen=True)
class ParameterBlock:
    """
    Contiguous run of ``bvec`` owned by one weight function.

    Attributes
    ----------
    kind : str
        ``"homogeneous"`` for b_j weights, ``"forcing"`` for a_k weights.
    index : int
        Position of the weight in its sequence (j or k).
    offset : int
        First entry in ``bvec``.
    length : int
        Number of coefficients.
    """
    kind: str
    index: int
    offset: int
    length: int

    @property
    def stop(self) -> int:
        return self.offset + self.length

    @property
    def slice(self) -> slice:
        return slice(self.offset, self.stop)


def check_weight_cells(weights: Sequence, name: str) -> List[WeightFunction]:
    """
    Validate a sequence of weight functions.

    Raises
    ------
    ValueError
        If an entry is itself a sequence (multi-variable systems).
    TypeError
        If an entry is not a WeightFunction.
    """
    weights = list(weights)
    for j, w in enumerate(weights):
        if isinstance(w, (list, tuple)):
            raise ValueError(
                f"{name}[{j}] is a nested sequence; only single-variable "
                "systems are supported"
            )
        if not isinstance(w, WeightFunction):
            raise TypeError(
                f"{name}[{j}] must be a WeightFunction, got {type(w).__name__}"
            )
    return weights


@dataclass(frozen=True)
class ParameterLayout:
    """Ordered table of parameter blocks."""
    blocks: Tuple[ParameterBlock, ...]
    size: int

    @classmethod
    def from_weights(
        cls,
        bwt: Sequence[WeightFunction],
        awt: Sequence[WeightFunction] = ()
    ) -> "ParameterLayout":
        bwt = check_weight_cells(bwt, "bwt")
        awt = check_weight_cells(awt, "awt")

        blocks = []
        offset = 0
        for kind, weights in ((HOMOGENEOUS, bwt), (FORCING, awt)):
            for index, w in enumerate(weights):
                if not w.estimate:
                    continue
                blocks.append(ParameterBlock(kind, index, offset, w.nbasis))
                offset += w.nbasis

        return cls(tuple(blocks), offset)

    def weight(
        self,
        block: ParameterBlock,
        bwt: Sequence[WeightFunction],
        awt: Sequence[WeightFunction]
    ) -> WeightFunction:
        """Weight function owning ``block``."""
        return bwt[block.index] if block.kind == HOMOGENEOUS else awt[block.index]

    def pack(
        self,
        bwt: Sequence[WeightFunction],
        awt: Sequence[WeightFunction] = ()
    ) -> np.ndarray:
        """Collect the coefficients of estimated weights into ``bvec``."""
        bvec = np.zeros(self.size)
        for block in self.blocks:
            bvec[block.slice] = self.weight(block, bwt, awt).coef
        return bvec

    def unpack(
        self,
        bvec: np.ndarray,
        bwt: Sequence[WeightFunction],
        awt: Sequence[WeightFunction] = ()
    ) -> Tuple[List[WeightFunction], List[WeightFunction]]:
        """
        Spread ``bvec`` back into weight functions.

        Returns new lists; the input weights are left untouched.

        Raises
        ------
        ValueError
            If ``bvec`` does not have ``size`` entries.
        """
        bvec = np.asarray(bvec, dtype=float).ravel()
        if bvec.size != self.size:
            raise ValueError(
                f"bvec has {bvec.size} entries, layout expects {self.size}"
            )
        new_bwt = list(bwt)
        new_awt = list(awt)
        for block in self.blocks:
            target = new_bwt if block.kind == HOMOGENEOUS else new_awt
            target[block.index] = target[block.index].with_coef(bvec[block.slice])
        return new_bwt, new_awt
