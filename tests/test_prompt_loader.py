from pathlib import Path

import pytest

from wge.llm.prompt_loader import PROJECT_ROOT, load_prompt, prompt_path


def test_prompt_path_maps_versions():
    path = prompt_path("overflow_v001")
    assert path.as_posix().endswith("prompts/overflow/v001.md")


def test_prompt_path_rejects_bad_prefix():
    with pytest.raises(ValueError):
        prompt_path("v001")


def test_load_prompt_reads_existing_file():
    prompt = load_prompt("overflow_v001")
    assert "overflowProbability" in prompt
    assert (PROJECT_ROOT / Path("prompts/overflow/v001.md")).exists()


def test_load_prompt_missing_version():
    with pytest.raises(FileNotFoundError):
        load_prompt("overflow_v999")
