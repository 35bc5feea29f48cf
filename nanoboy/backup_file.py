"""A save file mirrored in memory and written back to disk."""

from pathlib import Path


class BackupFile:
    """Cartridge backup memory stored in a file on disk."""

    def __init__(self, stream, memory: bytearray, save_size: int):
        self._stream = stream
        self._memory = memory
        self._save_size = save_size
        self.auto_update = True

    @classmethod
    def open_or_create(cls, save_path, valid_sizes, default_size: int) -> "BackupFile":
        """Open an existing save of a valid size or create a fresh one filled with 0xFF."""
        path = Path(save_path)

        if path.is_file():
            file_size = path.stat().st_size
            # allow for some extra/unused data at the end of the file
            save_size = file_size & ~63
            if save_size in valid_sizes:
                stream = path.open("r+b")
                memory = bytearray(stream.read(file_size))
                return cls(stream, memory, save_size)

        stream = path.open("w+b")
        backup = cls(stream, bytearray(default_size), default_size)
        backup.memory_set(0, default_size, 0xFF)
        return backup

    def _check(self, index: int, length: int, action: str) -> None:
        if index < 0 or index + length > self._save_size:
            raise IndexError(f"BackupFile: out-of-bounds index while {action}")

    def read(self, index: int) -> int:
        self._check(index, 1, "reading")
        return self._memory[index]

    def write(self, index: int, value: int) -> None:
        self._check(index, 1, "writing")
        self._memory[index] = value
        if self.auto_update:
            self.update(index, 1)

    def memory_set(self, index: int, length: int, value: int) -> None:
        self._check(index, length, "setting memory")
        self._memory[index:index + length] = bytes([value]) * length
        if self.auto_update:
            self.update(index, length)

    def update(self, index: int, length: int) -> None:
        self._check(index, length, "updating file")
        self._stream.seek(index)
        self._stream.write(self._memory[index:index + length])
        self._stream.flush()

    def buffer(self) -> bytearray:
        return self._memory

    def size(self) -> int:
        return self._save_size

    def close(self) -> None:
        self._stream.close()

    def __enter__(self) -> "BackupFile":
        return self

    def __exit__(self, *args) -> None:
        self.close()