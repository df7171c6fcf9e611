from __future__ import annotations

import os
from pathlib import Path

import pytest

from overlay_dedup.dedupconfig import DedupConfig

OLD_NS = 1_600_000_000 * 1_000_000_000
NEW_NS = 1_700_000_000 * 1_000_000_000


class Overlay:
    """A lower and upper directory pair under a temporary path."""

    def __init__(self, root: Path) -> None:
        self.lower = root / "lower"
        self.upper = root / "upper"
        self.lower.mkdir()
        self.upper.mkdir()

    def write(
        self,
        layer: str,
        relpath: str,
        content: bytes = b"content",
        mtime_ns: int = OLD_NS,
    ) -> Path:
        """Write a file into "lower" or "upper" with a fixed modification time."""
        path = getattr(self, layer) / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        os.utime(path, ns=(mtime_ns, mtime_ns))
        return path

    def pair(
        self,
        relpath: str,
        lower_content: bytes = b"content",
        upper_content: bytes | None = None,
        *,
        lower_mtime_ns: int = OLD_NS,
        upper_mtime_ns: int = NEW_NS,
    ) -> None:
        """Write the same relative file into both layers."""
        if upper_content is None:
            upper_content = lower_content
        self.write("lower", relpath, lower_content, lower_mtime_ns)
        self.write("upper", relpath, upper_content, upper_mtime_ns)

    def symlink(self, layer: str, relpath: str, target: str, mtime_ns: int) -> Path:
        path = getattr(self, layer) / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        os.symlink(target, path)
        os.utime(path, ns=(mtime_ns, mtime_ns), follow_symlinks=False)
        return path

    def config(self, **overrides: object) -> DedupConfig:
        config = DedupConfig()
        config.update(
            lower_directory=str(self.lower),
            upper_directory=str(self.upper),
            **overrides,  # type: ignore[arg-type]
        )
        return config

    def snapshot(self) -> dict[str, tuple[str, bytes, int]]:
        """Every entry of both layers with its type, content and mtime."""
        result: dict[str, tuple[str, bytes, int]] = {}
        for layer in ("lower", "upper"):
            root = getattr(self, layer)
            for dirpath, dirnames, filenames in os.walk(root):
                for name in dirnames + filenames:
                    path = Path(dirpath, name)
                    key = f"{layer}/{path.relative_to(root)}"
                    if path.is_symlink():
                        result[key] = ("link", os.readlink(path).encode(), 0)
                    elif path.is_dir():
                        result[key] = ("dir", b"", 0)
                    else:
                        mtime = path.stat().st_mtime_ns
                        result[key] = ("file", path.read_bytes(), mtime)
        return result



def make_chain(root: Path, depth: int, name: str = "d") -> Path:
    """Create root/d/d/... depth levels deep without recursion; return the deepest."""
    path = root
    for _ in range(depth):
        path = path / name
        os.mkdir(path)
    return path


def remove_chain(root: Path, depth: int, name: str = "d") -> None:
    """Delete a chain built by make_chain, deepest level first."""
    paths = [root]
    for _ in range(depth):
        paths.append(paths[-1] / name)

    for path in reversed(paths[1:]):
        if not path.exists():
            continue
        for child in path.iterdir():
            if not child.is_dir():
                child.unlink()
        path.rmdir()


@pytest.fixture
def overlay(tmp_path: Path) -> Overlay:
    return Overlay(tmp_path)
