import logging
from typing import List, Sequence

from schema import CorpusStatistics, EvaluationReport, ParseResult, Sentence, Token
from sentence import has_non_projective_structure, sentence_recall_precision

logger = logging.getLogger(__name__)


def completely_parsed(stack: Sequence[Token], buffer: Sequence[Token]) -> bool:
  """only the root is left on the stack and the buffer is exhausted."""
  return len(stack) == 1 and len(buffer) == 0 and stack[0].head == 0


def evaluate_corpus(
  sentences: Sequence[Sentence], results: Sequence[ParseResult]
) -> EvaluationReport:
  """
  sequential reduction over per-sentence parses, in corpus order.
  rates and averages are fractions in [0, 1].
  """
  if len(sentences) != len(results):
    raise ValueError(
      f"got {len(results)} parse results for {len(sentences)} sentences"
    )

  n_complete = 0
  n_success = 0
  recall_sum = 0.0
  precision_sum = 0.0
  failed: List[int] = []

  for index, (sentence, result) in enumerate(zip(sentences, results)):
    if completely_parsed(result.stack, result.buffer):
      n_complete += 1

    score = sentence_recall_precision(sentence, result.arcs)
    recall_sum += score.recall
    precision_sum += score.precision
    if score.recall == 1 and score.precision == 1:
      n_success += 1
    else:
      failed.append(index)

  n = len(sentences)
  report = EvaluationReport(
    n_sentences=n,
    n_complete=n_complete,
    n_success=n_success,
    success_rate=n_success / n if n else 0.0,
    complete_rate=n_complete / n if n else 0.0,
    average_recall=recall_sum / n if n else 0.0,
    average_precision=precision_sum / n if n else 0.0,
    failed=failed,
  )

  logger.info(
    "success %.2f%% | complete %.2f%% | recall %.2f%% | precision %.2f%%",
    report.success_rate * 100.0,
    report.complete_rate * 100.0,
    report.average_recall * 100.0,
    report.average_precision * 100.0,
  )
  return report


def corpus_statistics(sentences: Sequence[Sentence]) -> CorpusStatistics:
  non_projective = [
    i for i, s in enumerate(sentences) if has_non_projective_structure(s) is not None
  ]
  n = len(sentences)
  stats = CorpusStatistics(
    n_sentences=n,
    n_projective=n - len(non_projective),
    n_non_projective=len(non_projective),
    non_projective_rate=len(non_projective) / n if n else 0.0,
    non_projective=non_projective,
  )
  logger.info(
    "projective: %d | non-projective: %d (%.2f%%)",
    stats.n_projective,
    stats.n_non_projective,
    stats.non_projective_rate * 100.0,
  )
  return stats
