"""
Cosine similarity and stable top-k selection over embedding matrices.
"""

import numpy as np
from numpy.typing import NDArray


def normalize_embeddings(embeddings: NDArray[np.float32]) -> NDArray[np.float32]:
    """
    Normalize embeddings to unit length for cosine similarity.

    Args:
        embeddings: Array of shape (n, dimension)

    Returns:
        Normalized embeddings of same shape
    """
    norms = np.linalg.norm(embeddings, axis=1, keepdims=True)
    # Avoid division by zero
    norms = np.where(norms == 0, 1, norms)
    return (embeddings / norms).astype(np.float32)


def cosine_scores(
    matrix: NDArray[np.float32],
    query: NDArray[np.float32],
) -> NDArray[np.float32]:
    """
    Cosine similarity of every row of ``matrix`` against ``query``.

    Args:
        matrix: Array of shape (n, dimension)
        query: Array of shape (dimension,)

    Returns:
        Array of shape (n,)

    Raises:
        ValueError: If the dimensions differ
    """
    query = np.asarray(query, dtype=np.float32).reshape(-1)
    if matrix.shape[0] == 0:
        return np.empty((0,), dtype=np.float32)
    if matrix.shape[1] != query.shape[0]:
        raise ValueError(
            f"Query has dimension {query.shape[0]}, stored embeddings have {matrix.shape[1]}"
        )

    normalized_query = normalize_embeddings(query.reshape(1, -1))[0]
    return normalize_embeddings(matrix) @ normalized_query


def top_k_stable(scores: NDArray[np.float32], k: int) -> list[int]:
    """
    Positions of the ``k`` highest scores, best first.

    Equal scores keep their original relative order.
    """
    if k <= 0 or len(scores) == 0:
        return []
    order = np.argsort(-scores, kind="stable")
    return [int(i) for i in order[:k]]
