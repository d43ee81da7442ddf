"""Pure similarity functions for URL record matching.

Why: Field scoring is deterministic and dominates the pipeline cost, so it
lives in the domain with no I/O and no external libraries.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence

from .models import Candidate, FieldScores, Record
from .types import Score

# Product-type words -> category. Partial on purpose: a slug with no known
# word carries no category signal at all.
CATEGORY_LEXICON: Mapping[str, str] = {
    # roupas
    "blusa": "roupa",
    "camiseta": "roupa",
    "camisa": "roupa",
    "bermuda": "roupa",
    "calca": "roupa",
    "calça": "roupa",
    "short": "roupa",
    "vestido": "roupa",
    "saia": "roupa",
    "jaqueta": "roupa",
    "casaco": "roupa",
    "moletom": "roupa",
    "sueter": "roupa",
    "cardigan": "roupa",
    # calçados
    "sapato": "calcado",
    "tenis": "calcado",
    "tênis": "calcado",
    "sandalias": "calcado",
    "sandálias": "calcado",
    "chinelo": "calcado",
    "bota": "calcado",
    "salto": "calcado",
    "sneaker": "calcado",
    # acessórios
    "oculos": "acessorio",
    "óculos": "acessorio",
    "mochila": "acessorio",
    "bolsa": "acessorio",
    "carteira": "acessorio",
    "cinto": "acessorio",
    "relogio": "acessorio",
    "relógio": "acessorio",
    "chapeu": "acessorio",
    "chapéu": "acessorio",
    "boné": "acessorio",
    "bonet": "acessorio",
    "luvas": "acessorio",
    "cachecol": "acessorio",
    "cachecól": "acessorio",
}

INCOMPATIBLE_CATEGORIES: frozenset[frozenset[str]] = frozenset(
    {
        frozenset({"roupa", "calcado"}),
        frozenset({"roupa", "acessorio"}),
        frozenset({"calcado", "acessorio"}),
    }
)

# Apparel is split by body part: a top never stands in for a bottom
# ("blusa" vs "bermuda"). Full-body pieces are compatible with both.
GARMENT_GROUPS: Mapping[str, str] = {
    "blusa": "superior",
    "camiseta": "superior",
    "camisa": "superior",
    "jaqueta": "superior",
    "casaco": "superior",
    "moletom": "superior",
    "sueter": "superior",
    "cardigan": "superior",
    "bermuda": "inferior",
    "calca": "inferior",
    "calça": "inferior",
    "short": "inferior",
    "saia": "inferior",
    "vestido": "inteira",
}

INCOMPATIBLE_GARMENT_GROUPS: frozenset[frozenset[str]] = frozenset(
    {frozenset({"superior", "inferior"})}
)

SAME_CATEGORY_SCORE = 0.9
INCOMPATIBLE_CATEGORY_SCORE = 0.1
CONTAINED_SLUG_SCORE = 0.8

_SLUG_DISALLOWED_RE = re.compile(r"[^a-z0-9\-_]")
_HYPHEN_RUN_RE = re.compile(r"-+")


def levenshtein_distance(a: str, b: str) -> int:
    """Classic edit distance (insert/delete/substitute cost 1).

    Fills the full (len(b)+1) x (len(a)+1) matrix; rows follow b, columns a.
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    matrix = [[0] * (len(a) + 1) for _ in range(len(b) + 1)]
    for i in range(len(b) + 1):
        matrix[i][0] = i
    for j in range(len(a) + 1):
        matrix[0][j] = j

    for i in range(1, len(b) + 1):
        for j in range(1, len(a) + 1):
            if b[i - 1] == a[j - 1]:
                matrix[i][j] = matrix[i - 1][j - 1]
            else:
                matrix[i][j] = min(
                    matrix[i - 1][j - 1] + 1,  # substitution
                    matrix[i][j - 1] + 1,  # insertion
                    matrix[i - 1][j] + 1,  # deletion
                )
    return matrix[len(b)][len(a)]


def field_similarity(a: str, b: str) -> Score:
    """Edit-distance similarity in [0, 1].

    Examples:
        >>> field_similarity("", "x")
        0.0
        >>> field_similarity("Blusa", "blusa")
        1.0
    """
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    distance = levenshtein_distance(a.lower(), b.lower())
    return max(0.0, 1.0 - distance / max(len(a), len(b)))


def clean_slug(slug: str) -> str:
    cleaned = _SLUG_DISALLOWED_RE.sub("", slug.lower())
    cleaned = _HYPHEN_RUN_RE.sub("-", cleaned)
    return cleaned.strip("-")


def _product_word(cleaned_slug: str) -> str | None:
    for word in cleaned_slug.split("-"):
        if word.lower() in CATEGORY_LEXICON:
            return word.lower()
    return None


def extract_product_category(cleaned_slug: str) -> str | None:
    """Category of the first lexicon word found in the slug, else None."""
    word = _product_word(cleaned_slug)
    return CATEGORY_LEXICON[word] if word else None


def extract_garment_group(cleaned_slug: str) -> str | None:
    """Garment group of the word that decided the category (apparel only)."""
    word = _product_word(cleaned_slug)
    return GARMENT_GROUPS.get(word) if word else None


def are_incompatible_categories(first: str, second: str) -> bool:
    if first == second:
        return False
    return frozenset({first, second}) in INCOMPATIBLE_CATEGORIES


def are_incompatible_garments(first: str | None, second: str | None) -> bool:
    if not first or not second or first == second:
        return False
    return frozenset({first, second}) in INCOMPATIBLE_GARMENT_GROUPS


def slug_similarity(slug_a: str, slug_b: str) -> Score:
    """Layered slug heuristic; the first rule that applies decides.

    1. either empty -> 0
    2. raw equality -> 1
    3. cleaned equality -> 1
    4. same product category (and compatible garment group) -> 0.9
    5. incompatible categories or garment groups -> 0.1
    6. one cleaned slug contains the other -> 0.8
    7. edit-distance similarity of the cleaned slugs
    """
    if not slug_a or not slug_b:
        return 0.0
    if slug_a == slug_b:
        return 1.0

    clean_a = clean_slug(slug_a)
    clean_b = clean_slug(slug_b)
    if clean_a == clean_b:
        return 1.0

    category_a = extract_product_category(clean_a)
    category_b = extract_product_category(clean_b)
    if category_a and category_b:
        if category_a == category_b:
            if are_incompatible_garments(
                extract_garment_group(clean_a), extract_garment_group(clean_b)
            ):
                return INCOMPATIBLE_CATEGORY_SCORE
            return SAME_CATEGORY_SCORE
        if are_incompatible_categories(category_a, category_b):
            return INCOMPATIBLE_CATEGORY_SCORE

    if clean_a in clean_b or clean_b in clean_a:
        return CONTAINED_SLUG_SCORE

    return field_similarity(clean_a, clean_b)


def weighted_score(de: Record, rast: Record, weights: Sequence[float]) -> Candidate:
    """Score one RASTREIO record against one DE record.

    Args:
        de: Source record
        rast: Target record (becomes the candidate)
        weights: Already normalized (slug, title, description, h1) weights

    Returns:
        Candidate with the clamped weighted score and raw per-field scores
    """
    details = FieldScores(
        slug_score=slug_similarity(de.slug, rast.slug),
        title_score=field_similarity(de.meta_title, rast.meta_title),
        desc_score=field_similarity(de.meta_description, rast.meta_description),
        h1_score=field_similarity(de.h1, rast.h1),
    )
    total = (
        details.slug_score * weights[0]
        + details.title_score * weights[1]
        + details.desc_score * weights[2]
        + details.h1_score * weights[3]
    )
    return Candidate(record=rast, score=max(0.0, min(1.0, total)), details=details)
