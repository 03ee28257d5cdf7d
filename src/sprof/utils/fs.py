from abc import ABC, abstractmethod
import os

from pydantic import BaseModel

SKIPPED_DIRS = {"__pycache__", "venv", ".venv", "env", "node_modules", "build", "dist"}


class FileMetadata(BaseModel):
    lines: int


class FileSystem(ABC):
    @abstractmethod
    def read_file(self, path: str) -> str:
        pass

    @abstractmethod
    def get_file_metadata(self, path: str) -> FileMetadata:
        pass

    @abstractmethod
    def write_file(self, path: str, content: str, in_memory: bool = False) -> None:
        pass

    @abstractmethod
    def list_files(self, path: str, suffix: str = ".py") -> list[str]:
        pass

    @abstractmethod
    def is_dir(self, path: str) -> bool:
        pass


def is_skipped_dir(name: str) -> bool:
    return name.startswith(".") or name in SKIPPED_DIRS


class CachedLocalFileSystem(FileSystem):
    def __init__(self):
        self._cache: dict[str, str] = {}

    def read_file(self, path: str) -> str:
        path = os.path.abspath(path)
        if path in self._cache:
            return self._cache[path]

        with open(path, 'r', encoding='utf-8') as f:
            content = f.read()
            self._cache[path] = content
            return content

    def write_file(self, path: str, content: str, in_memory: bool = False) -> None:
        path = os.path.abspath(path)
        if not in_memory:
            with open(path, 'w', encoding='utf-8') as f:
                f.write(content)
        self._cache[path] = content

    def is_dir(self, path: str) -> bool:
        path = os.path.abspath(path)
        if os.path.isdir(path):
            return True
        prefix = path.rstrip(os.sep) + os.sep
        return any(cached.startswith(prefix) for cached in self._cache)

    def list_files(self, path: str, suffix: str = ".py") -> list[str]:
        """
        List files ending with suffix under path, recursively and sorted.

        Files written in memory are included. Hidden directories, caches and
        virtual environments are skipped.
        """
        path = os.path.abspath(path)
        if not self.is_dir(path):
            # If it's a file, just return the file itself
            return [path]

        found = set()
        for dirpath, dirnames, filenames in os.walk(path):
            dirnames[:] = [d for d in dirnames if not is_skipped_dir(d)]
            for f in filenames:
                if f.endswith(suffix):
                    found.add(os.path.join(dirpath, f))

        prefix = path.rstrip(os.sep) + os.sep
        for cached in self._cache:
            if not cached.startswith(prefix) or not cached.endswith(suffix):
                continue
            rel_dirs = os.path.relpath(cached, path).split(os.sep)[:-1]
            if not any(is_skipped_dir(d) for d in rel_dirs):
                found.add(cached)
        return sorted(found)

    def get_file_metadata(self, path: str) -> FileMetadata:
        path = os.path.abspath(path)
        content = self.read_file(path)
        lines = content.splitlines()
        return FileMetadata(lines=len(lines))
