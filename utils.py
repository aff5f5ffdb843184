import os
import json
import pickle
import logging
from datetime import datetime
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def save_params(params, path: str) -> None:
  """saves model parameters to a file."""
  parent = os.path.dirname(path)
  if parent:
    os.makedirs(parent, exist_ok=True)
  with open(path, "wb") as f:
    pickle.dump(params, f)
  logger.info("model parameters saved to %s", path)


def load_params(path: str):
  """loads parameters from a file; a missing file is fatal."""
  if not os.path.exists(path):
    raise FileNotFoundError(f"could not find model parameters at {path}")
  with open(path, "rb") as f:
    params = pickle.load(f)
  logger.info("model parameters loaded from %s", path)
  return params


def timestamp(now: Optional[datetime] = None) -> str:
  """filesystem-safe local timestamp, e.g. 2024-10-19--14-05-09."""
  now = now or datetime.now()
  return now.strftime("%Y-%m-%d--%H-%M-%S")


def _jsonable(value: Any) -> Any:
  if hasattr(value, "_asdict"):
    return {k: _jsonable(v) for k, v in value._asdict().items()}
  if isinstance(value, dict):
    return {k: _jsonable(v) for k, v in value.items()}
  if isinstance(value, (list, tuple)):
    return [_jsonable(v) for v in value]
  return value


def save_results(output_dir: str, kind: str, payload: Dict[str, Any]) -> str:
  """writes <kind>Results-<timestamp>.json and returns its path."""
  os.makedirs(output_dir, exist_ok=True)
  path = os.path.join(output_dir, f"{kind}Results-{timestamp()}.json")
  with open(path, "w", encoding="utf-8") as f:
    json.dump(_jsonable(payload), f, indent=2)
  logger.info("%s results saved to %s", kind, path)
  return path
