import os
import json
import logging
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

import numpy as np

from config import NULL, NULL_INDEX, validate_vocab
from schema import Pattern, ParserVocab, Sentence, Token

logger = logging.getLogger(__name__)


class VocabularyError(FileNotFoundError):
  """a vocabulary file needed for testing is missing."""


class PatternFormatError(ValueError):
  """a pattern record lacks its input or output vector."""


def new_vocab() -> ParserVocab:
  """empty, growable vocabularies holding only the NULL entry."""
  return ParserVocab({NULL: NULL_INDEX}, {NULL: NULL_INDEX}, {NULL: NULL_INDEX})


def update_vocab(vocab: ParserVocab, token: Token) -> None:
  """append-if-absent; forms are lower-cased before lookup."""
  for mapping, key in (
    (vocab.form2id, token.form.lower()),
    (vocab.lemma2id, token.lemma),
    (vocab.upostag2id, token.upostag),
  ):
    if key not in mapping:
      mapping[key] = len(mapping)


def parse_conllu(text: str, vocab: Optional[ParserVocab] = None) -> List[Sentence]:
  """
  CoNLL-U reader.
  - comment and blank lines close the current sentence
  - lines with fewer than 8 tab-separated fields are ignored
  - multiword tokens (1-2) and empty nodes (1.1) are skipped
  - when a vocab is given it grows with every token (extraction mode)
  """
  sentences: List[Sentence] = []
  tokens: List[Token] = []

  def flush():
    nonlocal tokens
    if tokens:
      sentences.append(Sentence(tuple(tokens)))
      tokens = []

  for line_no, line in enumerate(text.split("\n"), start=1):
    line = line.rstrip("\r")
    if line.startswith("#") or not line.strip():
      flush()
      continue

    sp = line.split("\t")
    if len(sp) < 8:
      continue

    tok_id = sp[0]
    if "-" in tok_id or "." in tok_id:
      continue

    try:
      token = Token(
        id=int(tok_id),
        form=sp[1],
        lemma=sp[2],
        upostag=sp[3],
        head=int(sp[6]),
        deprel=sp[7],
      )
    except ValueError as e:
      raise ValueError(f"invalid token on line {line_no}: {e}") from e
    tokens.append(token)
    if vocab is not None:
      update_vocab(vocab, token)

  flush()
  return sentences


def load_conll_data(
  file_path: str, vocab: Optional[ParserVocab] = None
) -> List[Sentence]:
  with open(file_path, "r", encoding="utf-8") as f:
    sentences = parse_conllu(f.read(), vocab)

  logger.info("loaded %d sentences from %s", len(sentences), file_path)
  if vocab is not None:
    logger.info(
      "vocabulary sizes: forms %d | lemmas %d | POS tags %d",
      len(vocab.form2id),
      len(vocab.lemma2id),
      len(vocab.upostag2id),
    )
  return sentences


def serialize_sentences(
  sentences: Sequence[Sentence], indexes: Optional[Iterable[int]] = None
) -> str:
  """CoNLL-U-like text for the selected sentences (all when indexes is None)."""
  if indexes is None:
    indexes = range(len(sentences))

  blocks = []
  for index in indexes:
    lines = [f"# Sentence: {index + 1}"]
    for t in sentences[index].tokens:
      lines.append(f"{t.id}\t{t.form}\t{t.lemma}\t{t.upostag}\t{t.head}\t{t.deprel}")
    blocks.append("\n".join(lines))
  return "\n\n".join(blocks)


def _ensure_parent(path: str) -> None:
  parent = os.path.dirname(path)
  if parent:
    os.makedirs(parent, exist_ok=True)


def save_subset(
  file_path: str, sentences: Sequence[Sentence], indexes: Iterable[int]
) -> None:
  indexes = list(indexes)
  _ensure_parent(file_path)
  with open(file_path, "w", encoding="utf-8") as f:
    f.write(serialize_sentences(sentences, indexes))
  logger.info("saved %d sentences to %s", len(indexes), file_path)


def save_vocab(vocab: ParserVocab, form_file: str, lemma_file: str, upostag_file: str):
  for mapping, path in (
    (vocab.form2id, form_file),
    (vocab.lemma2id, lemma_file),
    (vocab.upostag2id, upostag_file),
  ):
    _ensure_parent(path)
    with open(path, "w", encoding="utf-8") as f:
      json.dump(dict(mapping), f, indent=2, ensure_ascii=False)
  logger.info("vocabularies saved to %s", os.path.dirname(form_file) or ".")


def load_vocab(form_file: str, lemma_file: str, upostag_file: str) -> ParserVocab:
  """loads frozen (read-only) vocabularies; a missing file is fatal."""
  mappings: List[Dict[str, int]] = []
  for path in (form_file, lemma_file, upostag_file):
    if not os.path.exists(path):
      raise VocabularyError(f"could not find {path}")
    with open(path, "r", encoding="utf-8") as f:
      mappings.append(json.load(f))

  vocab = ParserVocab(*(MappingProxyType(m) for m in mappings))
  validate_vocab(vocab)
  logger.info(
    "vocabularies loaded: forms %d | lemmas %d | POS tags %d",
    len(vocab.form2id),
    len(vocab.lemma2id),
    len(vocab.upostag2id),
  )
  return vocab


def save_patterns(patterns: Sequence[Pattern], file_path: str) -> None:
  """JSON array with one record per line so it can be streamed back."""
  _ensure_parent(file_path)
  with open(file_path, "w", encoding="utf-8") as f:
    f.write("[\n")
    for i, pattern in enumerate(patterns):
      record = {
        "input": np.asarray(pattern.input).tolist(),
        "output": np.asarray(pattern.output).tolist(),
      }
      f.write(json.dumps(record))
      if i != len(patterns) - 1:
        f.write(",\n")
    f.write("\n]")
  logger.info("saved %d patterns to %s", len(patterns), file_path)


def _to_vector(record: dict, key: str, line_no: int) -> np.ndarray:
  value = record.get(key)
  if not isinstance(value, list) or not value:
    raise PatternFormatError(f"invalid pattern {key} on line {line_no}")
  try:
    vector = np.asarray(value, dtype=np.float32)
  except (TypeError, ValueError) as e:
    raise PatternFormatError(f"invalid pattern {key} on line {line_no}: {e}") from e
  if vector.ndim != 1:
    raise PatternFormatError(f"invalid pattern {key} on line {line_no}")
  return vector


def _to_pattern(record: dict, line_no: int) -> Pattern:
  return Pattern(
    input=_to_vector(record, "input", line_no),
    output=_to_vector(record, "output", line_no),
  )


def iter_patterns(file_path: str) -> Iterator[Pattern]:
  """streams patterns written by save_patterns without loading the whole file."""
  with open(file_path, "r", encoding="utf-8") as f:
    for line_no, line in enumerate(f, start=1):
      line = line.strip()
      if line in ("", "[", "]"):
        continue
      if line.endswith(","):
        line = line[:-1]
      try:
        record = json.loads(line)
      except json.JSONDecodeError as e:
        raise PatternFormatError(f"invalid pattern on line {line_no}: {e}") from e
      if not isinstance(record, dict):
        raise PatternFormatError(f"invalid pattern on line {line_no}")
      yield _to_pattern(record, line_no)


def load_patterns(file_path: str) -> List[Pattern]:
  patterns = list(iter_patterns(file_path))
  logger.info("loaded %d patterns from %s", len(patterns), file_path)
  return patterns


def load_word_vectors(file_path: str) -> Dict[str, np.ndarray]:
  """pretrained vectors stored as a JSON object: form -> list of floats."""
  with open(file_path, "r", encoding="utf-8") as f:
    raw = json.load(f)

  vectors = {w: np.asarray(v, dtype=np.float32) for w, v in raw.items()}
  dims = {v.shape for v in vectors.values()}
  if len(dims) > 1:
    raise ValueError(f"word vectors in {file_path} have mixed dimensions: {dims}")
  logger.info("loaded %d word vectors from %s", len(vectors), file_path)
  return vectors
