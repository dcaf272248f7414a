from __future__ import annotations

import asyncio
import io
from typing import Callable

import pytest
from PIL import Image


def make_image_bytes(size: tuple[int, int], mode: str = "RGB", fmt: str = "PNG") -> bytes:
    color = (200, 40, 40, 128) if mode == "RGBA" else (200, 40, 40)
    if mode in ("L", "P"):
        color = 120
    img = Image.new(mode, size, color)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


class FakeProcess:
    """Stands in for asyncio.subprocess.Process."""

    def __init__(self, stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0, hang: bool = False):
        self._stdout = stdout
        self._stderr = stderr
        self._final_returncode = returncode
        self._hang = hang
        self.returncode = None
        self.killed = False

    async def communicate(self):
        if self._hang:
            await asyncio.Event().wait()
        self.returncode = self._final_returncode
        return self._stdout, self._stderr

    def kill(self):
        self.killed = True
        self.returncode = -9

    async def wait(self):
        return self.returncode


class FakeExec:
    """Records every ffmpeg command and hands out the queued processes in order."""

    def __init__(self, *processes: FakeProcess):
        self.processes = list(processes)
        self.commands: list[list[str]] = []

    async def __call__(self, *command, **kwargs):
        self.commands.append(list(command))
        if not self.processes:
            raise AssertionError("ffmpeg invoked more times than expected")
        return self.processes.pop(0)


@pytest.fixture
def image_bytes() -> Callable[..., bytes]:
    return make_image_bytes


@pytest.fixture
def fake_ffmpeg(monkeypatch) -> Callable[..., FakeExec]:
    def install(*processes: FakeProcess) -> FakeExec:
        fake = FakeExec(*processes)
        monkeypatch.setattr(asyncio, "create_subprocess_exec", fake)
        return fake

    return install
