"""Shared fixtures: run hand-assembled word lists."""

import pytest

from lc3 import Image, RunOptions, run_image


@pytest.fixture
def run_words():
    def _run(words, input_text="", origin=0x3000, **options):
        return run_image(Image(origin, list(words)), input_text=input_text, options=RunOptions(**options))

    return _run
