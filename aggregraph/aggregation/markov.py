"""Markov Cluster Algorithm (MCL) over sparse matrices.

Matrix helpers are module-level so they can be reused and tested on their
own; MarkovAggregator wires them into the aggregation job.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional, Tuple

import numpy as np
import scipy.sparse as sp

from .base import Aggregator, CancellationToken, Cluster

logger = logging.getLogger(__name__)


def add_loops(matrix: sp.csr_matrix, loop_gain: float) -> sp.csr_matrix:
    """Add loop_gain to every diagonal entry. Non-positive gains are a no-op."""
    if loop_gain <= 0:
        return matrix
    n = matrix.shape[0]
    return (matrix + loop_gain * sp.identity(n, format="csr")).tocsr()


def normalize_rows(matrix: sp.csr_matrix) -> sp.csr_matrix:
    """Scale every nonempty row to sum to 1.0. Empty rows stay empty."""
    sums = np.asarray(matrix.sum(axis=1)).ravel()
    scale = np.zeros_like(sums, dtype=float)
    nonzero = sums != 0
    scale[nonzero] = 1.0 / sums[nonzero]
    return sp.csr_matrix(sp.diags(scale) @ matrix)


def expand(matrix: sp.csr_matrix) -> sp.csr_matrix:
    """Expansion step: square the matrix."""
    return sp.csr_matrix(matrix @ matrix)


def inflate(
    matrix: sp.csr_matrix,
    power: float,
    prune_threshold: float,
) -> Tuple[sp.csr_matrix, float]:
    """Inflation step.

    Raises every entry to the given power, sets entries below the prune
    threshold to zero and re-normalizes the rows.

    Returns:
        (inflated matrix, residual energy) where the residual is the largest
        (row max - row sum of squares) over nonempty rows
    """
    inflated = sp.csr_matrix(matrix.power(power))
    inflated.data[inflated.data < prune_threshold] = 0.0
    inflated.eliminate_zeros()
    inflated = normalize_rows(inflated)

    nonempty = np.diff(inflated.indptr) > 0
    if not nonempty.any():
        return inflated, 0.0

    row_max = inflated.max(axis=1).toarray().ravel()
    row_sumsq = np.asarray(inflated.multiply(inflated).sum(axis=1)).ravel()
    residual = float(np.max((row_max - row_sumsq)[nonempty]))
    return inflated, residual


def extract_clusters(matrix: sp.csr_matrix) -> List[List[int]]:
    """Group indices linked through any nonzero off-diagonal entry.

    Grouping is transitive. Indices with no off-diagonal entry become
    singleton groups so every index appears exactly once.
    """
    groups: Dict[int, List[int]] = {}
    coo = matrix.tocoo()
    for i, j, value in zip(coo.row.tolist(), coo.col.tolist(), coo.data.tolist()):
        if i == j or value == 0.0:
            continue
        row_group = groups.get(i)
        column_group = groups.get(j)
        if row_group is None and column_group is None:
            group = [i, j]
            groups[i] = groups[j] = group
        elif row_group is None:
            column_group.append(i)
            groups[i] = column_group
        elif column_group is None:
            row_group.append(j)
            groups[j] = row_group
        elif row_group is not column_group:
            if len(row_group) < len(column_group):
                row_group, column_group = column_group, row_group
            for index in column_group:
                groups[index] = row_group
            row_group.extend(column_group)

    clusters: List[List[int]] = []
    seen = set()
    for index in range(matrix.shape[0]):
        group = groups.get(index)
        if group is None:
            clusters.append([index])
        elif id(group) not in seen:
            seen.add(id(group))
            clusters.append(sorted(group))
    return clusters


class MarkovAggregator(Aggregator):
    """Markov clustering (MCL).

    Simulates random walks on the graph: the stochastic adjacency matrix is
    repeatedly expanded (squared) and inflated (sharpened) until it converges
    to a block structure whose connected entries form the clusters. Links
    count as weight 1.0 regardless of their declared weight.
    """

    name = "markov"

    def __init__(
        self,
        max_residual: float = 0.001,
        inflation: float = 2.0,
        loop_gain: float = 1.0,
        prune_threshold: float = 0.001,
        max_iterations: Optional[int] = None,
    ):
        """Initialize Markov aggregation.

        Args:
            max_residual: Convergence threshold on the residual energy
            inflation: Element-wise power applied during inflation
            loop_gain: Weight of the self-loop added to every node
            prune_threshold: Entries below this are zeroed after inflation
            max_iterations: Optional bound on expand/inflate iterations
        """
        super().__init__()
        self.max_residual = max_residual
        self.inflation = inflation
        self.loop_gain = loop_gain
        self.prune_threshold = prune_threshold
        self.max_iterations = max_iterations

    def _aggregate(self, token: CancellationToken) -> List[Cluster]:
        nodes = list(self.node_map.values())
        if not nodes:
            return []

        start = time.perf_counter()
        matrix = self._build_matrix(nodes, token)
        logger.debug(f"Sparse matrix creation time: {time.perf_counter() - start:.3f}s")
        self._set_progress(10)

        start = time.perf_counter()
        matrix = self._iterate(matrix, token)
        logger.debug(f"MCL algorithm time: {time.perf_counter() - start:.3f}s")
        self._set_progress(90)

        token.check()
        return [[nodes[index] for index in group] for group in extract_clusters(matrix)]

    def _build_matrix(self, nodes, token: CancellationToken) -> sp.csr_matrix:
        index = {node.id: i for i, node in enumerate(nodes)}
        rows: List[int] = []
        columns: List[int] = []
        for link in self._usable_links():
            token.check()
            source = index[link.source_id]
            target = index[link.target_id]
            rows.extend((source, target))
            columns.extend((target, source))

        n = len(nodes)
        data = np.ones(len(rows), dtype=float)
        # duplicate coordinates are summed on conversion
        return sp.coo_matrix((data, (rows, columns)), shape=(n, n)).tocsr()

    def _iterate(self, matrix: sp.csr_matrix, token: CancellationToken) -> sp.csr_matrix:
        matrix = normalize_rows(add_loops(matrix, self.loop_gain))

        residual = 1.0
        iteration = 0
        while residual > self.max_residual:
            token.check()
            if self.max_iterations is not None and iteration >= self.max_iterations:
                logger.warning(f"MCL stopped after {iteration} iterations "
                               f"without converging (residual {residual:.6f})")
                break
            matrix = expand(matrix)
            matrix, residual = inflate(matrix, self.inflation, self.prune_threshold)
            iteration += 1
            logger.debug(f"residual energy = {residual}")
            self._set_progress(min(89, 10 + iteration * 5))
        return matrix
