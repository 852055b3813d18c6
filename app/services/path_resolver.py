from pathlib import Path

from app.services.errors import InvalidName


class PathResolver:
    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir).absolute()

    def resolve(self, name: str) -> Path:
        """Get the path where a stored file with the given name lives.

        Args:
            name: Client-supplied file name

        Returns:
            Absolute path inside the base directory

        Raises:
            InvalidName: If the name could point outside the base directory
        """
        # Reject traversal before touching the filesystem
        if ".." in name:
            raise InvalidName()

        path = self.base_dir / name

        # Canonical form must be a direct child of the base directory
        if path.resolve().parent != self.base_dir.resolve():
            raise InvalidName()

        return path
