from functools import lru_cache
from typing import Dict, List, Optional, Sequence, Tuple
from schema import Arc, RecallPrecision, Sentence, Token


@lru_cache(maxsize=4096)
def get_arcs(sentence: Sentence) -> Tuple[Arc, ...]:
  """gold arcs in token order; the root token (head 0) contributes none."""
  return tuple(Arc(t.head, t.id) for t in sentence.tokens if t.head != 0)


def _span(a: int, b: int) -> Tuple[int, int]:
  return (a, b) if a <= b else (b, a)


def _spans_cross(s1: Tuple[int, int], s2: Tuple[int, int]) -> bool:
  # overlapping but not nested
  a1, b1 = s1
  a2, b2 = s2
  return (a1 < a2 < b1 < b2) or (a2 < a1 < b2 < b1)


def arcs_cross(arc1: Arc, arc2: Arc) -> bool:
  return _spans_cross(
    _span(arc1.head, arc1.dependent), _span(arc2.head, arc2.dependent)
  )


def tokens_cross(token1: Token, token2: Token) -> bool:
  """
  crossing test between each token and its own gold head.
  a root token carries no arc, so it never crosses anything.
  """
  if token1.head == 0 or token2.head == 0:
    return False
  return _spans_cross(_span(token1.id, token1.head), _span(token2.id, token2.head))


def has_non_projective_structure(sentence: Sentence) -> Optional[Tuple[Arc, Arc]]:
  """returns the first crossing pair of gold arcs, None for projective sentences."""
  arcs = get_arcs(sentence)
  for i in range(len(arcs)):
    for j in range(i + 1, len(arcs)):
      if arcs_cross(arcs[i], arcs[j]):
        return arcs[i], arcs[j]
  return None


def recall_precision(
  gold_arcs: Sequence[Arc], produced_arcs: Sequence[Arc]
) -> RecallPrecision:
  """
  exact (head, dependent) matching against the gold arcs.
  if either side is empty both scores are 0.
  """
  if not gold_arcs or not produced_arcs:
    return RecallPrecision(recall=0.0, precision=0.0)

  gold = set(gold_arcs)
  correct = sum(1 for arc in produced_arcs if arc in gold)
  return RecallPrecision(
    recall=correct / len(gold_arcs), precision=correct / len(produced_arcs)
  )


def sentence_recall_precision(
  sentence: Sentence, produced_arcs: Sequence[Arc]
) -> RecallPrecision:
  return recall_precision(get_arcs(sentence), produced_arcs)


def dependency_tree_lines(sentence: Sentence) -> List[str]:
  """indented rendering of the gold tree, one "form (deprel)" line per token."""
  children: Dict[int, List[Token]] = {}
  for token in sentence.tokens:
    children.setdefault(token.head, []).append(token)

  lines: List[str] = []

  def walk(token: Token, level: int) -> None:
    lines.append(f"{'  ' * level}{token.form} ({token.deprel})")
    for child in children.get(token.id, []):
      walk(child, level + 1)

  for root in children.get(0, []):
    walk(root, 0)
  return lines
