from pathlib import Path

import pytest
from PIL import Image


@pytest.fixture
def make_photo(tmp_path: Path):
    def _make(name: str = "boat.jpg", fmt: str = "JPEG") -> Path:
        path = tmp_path / name
        Image.new("RGB", (64, 48), (200, 200, 200)).save(path, format=fmt)
        return path

    return _make
