"""In-memory project tree: files, directories and the project root."""

from __future__ import annotations

from collections.abc import Iterator

from wasm_service.types import FileData, FileType


class File:
    """Leaf node holding text or binary content."""

    def __init__(
        self,
        name: str,
        type: FileType | str = FileType.UNKNOWN,
        data: FileData = "",
    ) -> None:
        self.name = name
        self.type = type
        self.description: str | None = None
        self.parent: Directory | None = None
        self._data: FileData = data

    @property
    def data(self) -> FileData:
        return self._data

    def get_data(self) -> FileData:
        return self._data

    def set_data(self, data: FileData) -> None:
        self._data = data

    def get_path(self) -> str:
        """Return the slash-separated path below the project root."""
        parts = [self.name]
        node = self.parent
        while node is not None and not isinstance(node, Project):
            parts.append(node.name)
            node = node.parent
        return "/".join(reversed(parts))

    def __repr__(self) -> str:
        return f"File({self.get_path()!r}, type={self.type!s})"


class Directory(File):
    """Composite node with ordered children."""

    def __init__(self, name: str) -> None:
        super().__init__(name, FileType.UNKNOWN)
        self.children: list[File] = []

    def add_file(self, file: File) -> File:
        if file.parent is not None:
            file.parent.children.remove(file)
        file.parent = self
        self.children.append(file)
        return file

    def new_file(self, name: str, type: FileType | str) -> File:
        """Create an empty file named ``name`` and attach it as a child."""
        return self.add_file(File(name, type))

    def new_directory(self, name: str) -> Directory:
        directory = Directory(name)
        self.add_file(directory)
        return directory

    def get_file(self, path: str) -> File | None:
        head, _, rest = path.partition("/")
        for child in self.children:
            if child.name != head:
                continue
            if not rest:
                return child
            if isinstance(child, Directory):
                return child.get_file(rest)
        return None

    def walk(self) -> Iterator[File]:
        """Yield every descendant in depth-first, insertion order."""
        for child in self.children:
            yield child
            if isinstance(child, Directory):
                yield from child.walk()

    def __repr__(self) -> str:
        return f"Directory({self.name!r}, children={len(self.children)})"


class Project(Directory):
    """Root directory of a workspace."""

    def __init__(self, name: str = "") -> None:
        super().__init__(name)
