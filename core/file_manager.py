"""
Core File Manager
Lecture des variantes et écriture des rapports
"""
from pathlib import Path
from typing import List

from .errors import MalformedInputError


class FileManagerError(Exception):
    """Exception générique pour les erreurs de FileManager"""
    pass


class FileManager:
    """
    Gestionnaire de fichiers : entrée UTF-8 stricte, sortie UTF-8.
    """

    def read_file(self, file_path: str) -> str:
        """
        Lit le contenu d'un fichier texte UTF-8.

        Args:
            file_path: Le chemin du fichier à lire

        Returns:
            Le contenu du fichier

        Raises:
            FileManagerError: Si le fichier ne peut pas être lu
            MalformedInputError: Si le fichier contient des octets non UTF-8
        """
        path = Path(file_path)
        if not path.exists():
            raise FileManagerError(f"File not found: {file_path}")
        if not path.is_file():
            raise FileManagerError(f"Not a regular file: {file_path}")

        try:
            raw = path.read_bytes()
        except PermissionError as e:
            raise FileManagerError(f"Permission denied for file: {file_path}") from e
        except OSError as e:
            raise FileManagerError(f"Error reading file {file_path}: {str(e)}") from e

        try:
            return raw.decode('utf-8')
        except UnicodeDecodeError as e:
            line_number = raw[:e.start].count(b"\n") + 1
            raise MalformedInputError(
                f"invalid UTF-8 byte 0x{raw[e.start]:02x}",
                path=str(file_path),
                line_number=line_number,
            ) from e

    def write_file(self, file_path: str, content: str, *, append: bool = False) -> None:
        """
        Écrit du contenu dans un fichier.

        Args:
            file_path: Le chemin du fichier à écrire
            content: Le contenu à écrire
            append: Ajoute le contenu en fin de fichier au lieu d'écraser

        Raises:
            FileManagerError: Si le fichier ne peut pas être écrit
        """
        try:
            path = Path(file_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            mode = 'a' if append else 'w'

            with open(path, mode, encoding='utf-8') as f:
                f.write(content)

        except PermissionError as e:
            raise FileManagerError(f"Permission denied for file: {file_path}") from e
        except OSError as e:
            raise FileManagerError(f"Error writing file {file_path}: {str(e)}") from e

    def list_files(self, directory: str, pattern: str = "*", recursive: bool = True) -> List[str]:
        """
        Liste les fichiers d'un répertoire, relatifs à ce répertoire.

        Args:
            directory: Le répertoire à explorer
            pattern: Pattern de filtrage (ex: "*.c")
            recursive: Explorer récursivement

        Returns:
            Liste triée des chemins relatifs trouvés
        """
        path = Path(directory)
        if not path.is_dir():
            raise FileManagerError(f"Not a directory: {directory}")

        files = path.rglob(pattern) if recursive else path.glob(pattern)
        return sorted(f.relative_to(path).as_posix() for f in files if f.is_file())


# Instance globale du gestionnaire de fichiers
file_manager = FileManager()
