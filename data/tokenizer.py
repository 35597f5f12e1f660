"""
Data Layer: Tokenizer
Découpage d'une variante en lignes logiques et détection des commentaires
"""
import logging
from typing import List, Optional, Sequence, Tuple

from core.errors import MalformedInputError
from core.file_manager import file_manager
from core.settings import Settings, get_settings
from domain.entities import FileSnapshot, LogicalLine, Variant


logger = logging.getLogger(__name__)


class LineNormalizer:
    """
    Transforme un texte brut en FileSnapshot.
    La syntaxe des commentaires vient des Settings.
    """

    def __init__(self, settings: Optional[Settings] = None):
        active = settings or get_settings()
        self.line_tokens: Tuple[str, ...] = tuple(active.line_comment_tokens)
        self.block_pairs: Tuple[Tuple[str, str], ...] = tuple(active.block_comment_pairs)
        self.ignore_trailing_whitespace = active.ignore_trailing_whitespace

    def read(self, file_path: str, variant: Variant) -> FileSnapshot:
        """
        Lit un fichier UTF-8 et le normalise.

        Raises:
            FileManagerError: Si le fichier est introuvable
            MalformedInputError: Octets non UTF-8 ou commentaire non fermé
        """
        content = file_manager.read_file(file_path)
        return self.normalize(content, variant=variant, path=str(file_path))

    def normalize(
        self,
        raw_content: str,
        variant: Variant = Variant.SOURCE,
        path: Optional[str] = None,
    ) -> FileSnapshot:
        """
        Découpe le contenu en lignes et classe chacune.

        Args:
            raw_content: Le texte complet d'une variante
            variant: Le côté de la comparaison
            path: Le chemin d'origine, utilisé dans les erreurs

        Returns:
            Un FileSnapshot immuable

        Raises:
            MalformedInputError: Si un commentaire bloc n'est pas équilibré
        """
        lines: List[LogicalLine] = []
        open_block: Optional[Tuple[str, int]] = None

        for index, raw in enumerate(raw_content.splitlines()):
            starts_in_block = open_block is not None
            open_block = self._scan_line(raw, index, open_block, path)
            stripped = raw.lstrip()

            is_comment = starts_in_block or self._starts_with_comment(stripped)
            is_blank = not stripped or (is_comment and self._is_bare_comment(stripped))
            key = raw.rstrip() if self.ignore_trailing_whitespace else raw

            lines.append(LogicalLine(
                index=index,
                raw_text=raw,
                is_comment=is_comment,
                is_blank=is_blank,
                key=key,
            ))

        if open_block is not None:
            opener, opened_at = open_block
            raise MalformedInputError(
                f"unterminated block comment '{opener}'",
                path=path,
                line_number=opened_at + 1,
            )

        logger.debug("Normalized %s: %d lines", path or variant.value, len(lines))
        return FileSnapshot(variant=variant, lines=tuple(lines), path=path)

    def _starts_with_comment(self, stripped: str) -> bool:
        openers = self.line_tokens + tuple(pair[0] for pair in self.block_pairs)
        return any(stripped.startswith(token) for token in openers)

    def _is_bare_comment(self, stripped: str) -> bool:
        """Vrai si la ligne ne contient qu'un marqueur de commentaire"""
        rest = stripped
        for token in self._by_length(self.line_tokens + tuple(p[0] for p in self.block_pairs)):
            if rest.startswith(token):
                rest = rest[len(token):]
                break
        rest = rest.strip()
        for _, closer in self.block_pairs:
            if rest.endswith(closer):
                rest = rest[:-len(closer)].strip()
        return rest == ""

    def _scan_line(
        self,
        raw: str,
        index: int,
        open_block: Optional[Tuple[str, int]],
        path: Optional[str],
    ) -> Optional[Tuple[str, int]]:
        """
        Suit l'équilibre des commentaires bloc sur une ligne.
        Les chaînes littérales et les commentaires ligne sont ignorés.
        """
        position = 0
        quote: Optional[str] = None
        closers = {opener: closer for opener, closer in self.block_pairs}
        line_tokens = self._by_length(self.line_tokens)
        openers = self._by_length(tuple(closers))
        all_closers = self._by_length(tuple(closers.values()))

        while position < len(raw):
            if open_block is not None:
                closer = closers[open_block[0]]
                found = raw.find(closer, position)
                if found < 0:
                    return open_block
                position = found + len(closer)
                open_block = None
                continue

            char = raw[position]
            if quote is not None:
                if char == "\\":
                    position += 2
                    continue
                if char == quote:
                    quote = None
                position += 1
                continue
            if char in ('"', "'"):
                quote = char
                position += 1
                continue

            if self._match(raw, position, line_tokens):
                return None
            opener = self._match(raw, position, openers)
            if opener:
                open_block = (opener, index)
                position += len(opener)
                continue
            stray = self._match(raw, position, all_closers)
            if stray:
                raise MalformedInputError(
                    f"block comment close '{stray}' without matching open",
                    path=path,
                    line_number=index + 1,
                )
            position += 1

        return open_block

    @staticmethod
    def _match(raw: str, position: int, tokens: Sequence[str]) -> Optional[str]:
        for token in tokens:
            if raw.startswith(token, position):
                return token
        return None

    @staticmethod
    def _by_length(tokens: Sequence[str]) -> Tuple[str, ...]:
        return tuple(sorted(tokens, key=len, reverse=True))
