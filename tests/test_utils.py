import json
import os
import re
from datetime import datetime

import numpy as np
import pytest

from config import create_config
from utils import load_params, save_params, save_results, timestamp


def test_timestamp_format():
  assert timestamp(datetime(2024, 10, 19, 14, 5, 9)) == "2024-10-19--14-05-09"
  assert re.fullmatch(r"\d{4}-\d{2}-\d{2}--\d{2}-\d{2}-\d{2}", timestamp())


def test_params_round_trip(tmp_path):
  path = str(tmp_path / "model" / "parser.params")
  save_params({"dense": {"kernel": np.ones((2, 3))}}, path)
  params = load_params(path)
  np.testing.assert_array_equal(params["dense"]["kernel"], np.ones((2, 3)))


def test_missing_params_are_fatal(tmp_path):
  with pytest.raises(FileNotFoundError):
    load_params(str(tmp_path / "missing.params"))


def test_save_results_writes_named_tuples(tmp_path):
  payload = {"config": create_config(), "failed": (1, 2)}
  path = save_results(str(tmp_path), "test", payload)
  assert re.fullmatch(r"testResults-.+\.json", os.path.basename(path))
  with open(path, encoding="utf-8") as f:
    saved = json.load(f)
  assert saved["config"]["hidden_sizes"] == [128, 128]
  assert saved["failed"] == [1, 2]
