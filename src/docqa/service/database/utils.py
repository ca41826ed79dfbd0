"""Vector math for scoring stored chunks against a query embedding."""

import math


def cosine_similarity(vec_a: list[float], vec_b: list[float]) -> float:
    """Cosine of the angle between two embeddings.

    Symmetric in its arguments. Vectors from different embedding models can
    have different dimensions; such pairs are not comparable and score 0.0,
    which keeps them below any positive threshold.

    Returns:
        float: Similarity in [-1, 1], or 0.0 for empty, mismatched or
               zero-magnitude input
    """
    if not vec_a or len(vec_a) != len(vec_b):
        return 0.0

    norm_a = math.hypot(*vec_a)
    norm_b = math.hypot(*vec_b)
    if not norm_a or not norm_b:
        return 0.0

    score = math.fsum(a * b for a, b in zip(vec_a, vec_b)) / (norm_a * norm_b)
    # Rounding can push parallel vectors just past +/-1
    return max(-1.0, min(1.0, score))
