import os
from typing import NamedTuple, Tuple, Mapping
from dotenv import load_dotenv
from schema import ParserVocab

# reserved vocabulary entry, also the form/tag of padding positions
NULL = "NULL"
NULL_INDEX = 0

SHIFT = "shift"
LEFT_ARC = "leftArc"
RIGHT_ARC = "rightArc"
SWAP = "swap"

# extracted constants from magic numbers
MAX_ORACLE_STEPS = 2000  # conservative upper bound for oracle trajectories
MAX_STACK_DEPTH = 3
MAX_BUFFER_DEPTH = 4
WORD_ENCODINGS = ("hash", "embedding")


class ParserConfig(NamedTuple):
  """feature, action and training settings shared by extract, train and test."""

  stack_depth: int = 2
  buffer_depth: int = 1
  use_swap: bool = False
  word_encoding: str = "hash"

  # classifier
  hidden_sizes: Tuple[int, ...] = (128, 128)
  dropout_rate: float = 0.0
  learning_rate: float = 0.001
  batch_size: int = 1024
  epochs: int = 50
  seed: int = 0

  progress_every: int = 1000

  @property
  def actions(self) -> Tuple[str, ...]:
    if self.use_swap:
      return (SHIFT, LEFT_ARC, RIGHT_ARC, SWAP)
    return (SHIFT, LEFT_ARC, RIGHT_ARC)


class Paths(NamedTuple):
  """input and output locations."""

  corpus_train: str
  corpus_test: str
  output_dir: str
  form_file: str
  lemma_file: str
  upostag_file: str
  patterns_file: str
  failed_sentences_file: str
  model_file: str
  word_vectors_file: str


def create_config(**overrides) -> ParserConfig:
  """factory function for ParserConfig with validation."""
  config = ParserConfig(**overrides)

  if not 1 <= config.stack_depth <= MAX_STACK_DEPTH:
    raise ValueError(
      f"stack depth must be between 1 and {MAX_STACK_DEPTH}: {config.stack_depth}"
    )
  if not 1 <= config.buffer_depth <= MAX_BUFFER_DEPTH:
    raise ValueError(
      f"buffer depth must be between 1 and {MAX_BUFFER_DEPTH}: {config.buffer_depth}"
    )
  if config.word_encoding not in WORD_ENCODINGS:
    raise ValueError(f"unknown word encoding: {config.word_encoding}")
  if not config.hidden_sizes:
    raise ValueError("at least one hidden layer is required")

  return config


def _env_bool(name: str, default: bool) -> bool:
  value = os.getenv(name)
  if value is None:
    return default
  return value.strip().lower() in ("1", "true", "yes", "on")


def load_config() -> ParserConfig:
  """builds a ParserConfig from the environment (.env is honoured)."""
  load_dotenv()
  defaults = ParserConfig()

  hidden = os.getenv("HIDDEN_SIZES")
  hidden_sizes = (
    tuple(int(h) for h in hidden.split(",") if h.strip())
    if hidden
    else defaults.hidden_sizes
  )

  return create_config(
    stack_depth=int(os.getenv("STACK_DEPTH", defaults.stack_depth)),
    buffer_depth=int(os.getenv("BUFFER_DEPTH", defaults.buffer_depth)),
    use_swap=_env_bool("USE_SWAP", defaults.use_swap),
    word_encoding=os.getenv("WORD_ENCODING", defaults.word_encoding),
    hidden_sizes=hidden_sizes,
    dropout_rate=float(os.getenv("DROPOUT_RATE", defaults.dropout_rate)),
    learning_rate=float(os.getenv("LEARNING_RATE", defaults.learning_rate)),
    batch_size=int(os.getenv("BATCH_SIZE", defaults.batch_size)),
    epochs=int(os.getenv("EPOCHS", defaults.epochs)),
    seed=int(os.getenv("SEED", defaults.seed)),
    progress_every=int(os.getenv("PROGRESS_EVERY", defaults.progress_every)),
  )


def load_paths() -> Paths:
  """
  derives every file location from the treebank settings.
  DEV=true uses the dev split for both training and testing.
  any single path can still be overridden by its own variable.
  """
  load_dotenv()

  treebank_base = os.getenv("UD_TREEBANK_BASE", "../ud-treebanks-v2.14")
  language = os.getenv("UD_LANGUAGE", "English")
  project = os.getenv("UD_PROJECT", "GUM")
  lang_code = os.getenv("UD_LANG_CODE", "en")
  output_dir = os.getenv("OUTPUT_DIR", "./data/output")

  ud_path = os.path.join(treebank_base, f"UD_{language}-{project}")
  base = f"{lang_code}_{project.lower()}-ud-"

  train_name = f"{base}train.conllu"
  test_name = f"{base}test.conllu"
  if _env_bool("DEV", False):
    train_name = test_name = f"{base}dev.conllu"

  def out(name: str) -> str:
    return os.path.join(output_dir, base + name)

  return Paths(
    corpus_train=os.getenv("CORPUS_TRAIN", os.path.join(ud_path, train_name)),
    corpus_test=os.getenv("CORPUS_TEST", os.path.join(ud_path, test_name)),
    output_dir=output_dir,
    form_file=os.getenv("FORM_FILE", out("form.json")),
    lemma_file=os.getenv("LEMMA_FILE", out("lemma.json")),
    upostag_file=os.getenv("UPOSTAG_FILE", out("upostag.json")),
    patterns_file=os.getenv("PATTERNS_FILE", out("patterns.json")),
    failed_sentences_file=os.getenv("FAILED_SENTENCES_FILE", out("failed.conllu")),
    model_file=os.getenv("MODEL_FILE", out("model.params")),
    word_vectors_file=os.getenv(
      "WORD_VECTORS_FILE", os.path.join(output_dir, "word2vec_vectors.json")
    ),
  )


def validate_vocab(vocab: ParserVocab) -> None:
  """every vocabulary must reserve NULL at 0 and use dense indices."""

  def check(name: str, mapping: Mapping[str, int]) -> None:
    if mapping.get(NULL) != NULL_INDEX:
      raise ValueError(f"{name} vocabulary must map {NULL} to {NULL_INDEX}")
    if sorted(mapping.values()) != list(range(len(mapping))):
      raise ValueError(f"{name} vocabulary indices are not dense")

  check("form", vocab.form2id)
  check("lemma", vocab.lemma2id)
  check("upostag", vocab.upostag2id)
