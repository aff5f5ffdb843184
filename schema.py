from typing import NamedTuple, Mapping, List, Tuple
import numpy as np


class Token(NamedTuple):
  """a single CoNLL-U token; head/deprel carry the gold annotation."""

  id: int
  form: str
  lemma: str = "_"
  upostag: str = "_"
  head: int = 0
  deprel: str = "_"


class Arc(NamedTuple):
  """a directed dependency edge."""

  head: int
  dependent: int


class Sentence(NamedTuple):
  """tokens in linear word order."""

  tokens: Tuple[Token, ...]


class ParserState(NamedTuple):
  """the immutable configuration of a transition-based parser."""

  stack: Tuple[Token, ...]  # top is the last element
  buffer: Tuple[Token, ...]  # front is the first element
  arcs: Tuple[Arc, ...]


class ParserVocab(NamedTuple):
  """mappings for string-to-ID conversions, each with NULL at index 0."""

  form2id: Mapping[str, int]
  lemma2id: Mapping[str, int]
  upostag2id: Mapping[str, int]


class Pattern(NamedTuple):
  """one training example: feature vector and one-hot action."""

  input: np.ndarray
  output: np.ndarray


class ExtractionResult(NamedTuple):
  """outcome of replaying the oracle over a corpus."""

  patterns: List[Pattern]
  failed: List[int]  # 0-based sentence indices, ascending
  n_success: int
  n_failed: int
  n_non_projective: int


class ParseResult(NamedTuple):
  """final (possibly partial) configuration of a runtime parse."""

  stack: Tuple[Token, ...]
  buffer: Tuple[Token, ...]
  arcs: Tuple[Arc, ...]
  exhausted: bool = False  # every ranked action failed at some step


class RecallPrecision(NamedTuple):
  recall: float
  precision: float


class EvaluationReport(NamedTuple):
  """aggregate statistics over a parsed corpus."""

  n_sentences: int
  n_complete: int
  n_success: int
  success_rate: float
  complete_rate: float
  average_recall: float
  average_precision: float
  failed: List[int]


class CorpusStatistics(NamedTuple):
  n_sentences: int
  n_projective: int
  n_non_projective: int
  non_projective_rate: float
  non_projective: List[int]  # 0-based sentence indices
