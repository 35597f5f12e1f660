"""
Core Settings
Configuration globale de la comparaison
"""
import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml


DEFAULT_CONFIG_PATH = "config/settings.yaml"

MATCH_MODES = ("substring", "word", "line")
OUTPUT_FORMATS = ("json", "text", "diff")


class SettingsError(Exception):
    """Exception levée pour une configuration invalide"""
    pass


class Settings:
    """Paramètres globaux de l'application"""

    def __init__(
        self,
        config_path: str = DEFAULT_CONFIG_PATH,
        *,
        project_root: Optional[Path] = None,
    ):
        self.config_path = config_path
        self.project_root = (project_root or Path.cwd()).resolve()
        self.logs_dir = self.project_root / "logs"

        # Syntaxe des commentaires (C par défaut)
        self.line_comment_tokens: List[str] = ["//"]
        self.block_comment_pairs: List[Tuple[str, str]] = [("/*", "*/")]
        self.ignore_trailing_whitespace: bool = True

        # Grammaire des directives
        self.match_mode: str = "substring"
        self.directive_patterns: Dict[str, List[str]] = {
            "must_stay": ["SHOULD STAY", "STAY"],
            "may_remove": ["MIGHT BE REMOVED", "MAY BE REMOVED"],
            "must_filter": ["SHOULD BE FILTERED", "FILTERED"],
        }

        # Politique de résolution
        self.rename_similarity: float = 0.6
        self.anchor_distance: Optional[int] = None

        # Comparaison
        self.default_format: str = "text"
        self.timeout_ms: Optional[int] = None
        self.workers: int = 4

        # Journalisation
        self.log_level: str = "INFO"
        self.session_log: bool = False

        # Metadata
        self.metadata = {
            "version": "1.0.0",
            "project_name": "variantfilter"
        }

        self._load_config()
        self.validate()

    def _load_config(self) -> None:
        """Charge la configuration depuis le fichier YAML"""
        path = Path(self.config_path)
        if not path.is_absolute():
            path = self.project_root / path
        if not path.exists():
            return

        try:
            with open(path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise SettingsError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(config, dict):
            raise SettingsError(f"{path} must contain a mapping at the top level")

        self.apply(config)

    def apply(self, config: Dict) -> None:
        """
        Applique un dictionnaire de configuration (même forme que le YAML).

        Args:
            config: Les sections à fusionner dans les valeurs courantes
        """
        comments = config.get('comments') or {}
        if 'line_tokens' in comments:
            self.line_comment_tokens = [str(t) for t in comments['line_tokens']]
        if 'block_pairs' in comments:
            self.block_comment_pairs = [(str(p[0]), str(p[1])) for p in comments['block_pairs']]
        self.ignore_trailing_whitespace = bool(
            comments.get('ignore_trailing_whitespace', self.ignore_trailing_whitespace)
        )

        directives = config.get('directives') or {}
        self.match_mode = directives.get('match_mode', self.match_mode)
        if 'patterns' in directives:
            patterns = dict(self.directive_patterns)
            for kind, values in (directives['patterns'] or {}).items():
                patterns[kind] = [str(v) for v in values]
            self.directive_patterns = patterns

        policy = config.get('policy') or {}
        self.rename_similarity = _number(policy, "policy.rename_similarity", self.rename_similarity, float)
        self.anchor_distance = _number(policy, "policy.anchor_distance", self.anchor_distance, int, optional=True)

        compare = config.get('compare') or {}
        self.default_format = compare.get('format', self.default_format)
        self.timeout_ms = _number(compare, "compare.timeout_ms", self.timeout_ms, int, optional=True)
        self.workers = _number(compare, "compare.workers", self.workers, int)

        logging_cfg = config.get('logging') or {}
        self.log_level = str(logging_cfg.get('level', self.log_level)).upper()
        self.session_log = bool(logging_cfg.get('session_log', self.session_log))

    def validate(self) -> None:
        """Vérifie la cohérence des valeurs chargées"""
        if self.match_mode not in MATCH_MODES:
            raise SettingsError(
                f"Unknown directive match_mode '{self.match_mode}', expected one of {MATCH_MODES}"
            )
        if self.default_format not in OUTPUT_FORMATS:
            raise SettingsError(
                f"Unknown output format '{self.default_format}', expected one of {OUTPUT_FORMATS}"
            )
        unknown = set(self.directive_patterns) - {"must_stay", "may_remove", "must_filter"}
        if unknown:
            raise SettingsError(f"Unknown directive kinds: {sorted(unknown)}")
        if not 0.0 <= self.rename_similarity <= 1.0:
            raise SettingsError("rename_similarity must be between 0 and 1")
        if self.anchor_distance is not None and self.anchor_distance < 0:
            raise SettingsError("anchor_distance must be positive")
        if not self.line_comment_tokens and not self.block_comment_pairs:
            raise SettingsError("At least one comment syntax is required")
        if self.workers < 1:
            raise SettingsError("workers must be at least 1")
        if self.timeout_ms is not None and self.timeout_ms < 0:
            raise SettingsError("timeout_ms must be positive")

    def ensure_directories(self) -> None:
        """Crée les répertoires nécessaires s'ils n'existent pas"""
        self.logs_dir.mkdir(parents=True, exist_ok=True)


def _number(section: Dict, name: str, default, cast, optional: bool = False):
    """Lit une valeur numérique; null n'est accepté que si optional"""
    value = section.get(name.split(".")[-1], default)
    if value is None and optional:
        return None
    if isinstance(value, bool):
        raise SettingsError(f"{name} must be a number, got {value!r}")
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise SettingsError(f"{name} must be a number, got {value!r}") from e


_SETTINGS_CACHE: Dict[str, Settings] = {}


def get_settings(config_path: Path | str | None = None) -> Settings:
    """Fabrique paresseuse de Settings basée sur le fichier de configuration."""

    key = str(Path(config_path).resolve()) if config_path else "__default__"
    if key in _SETTINGS_CACHE:
        return _SETTINGS_CACHE[key]

    if config_path:
        settings = Settings(config_path=str(Path(config_path).resolve()))
    else:
        settings = Settings(config_path=os.getenv("VARIANTFILTER_CONFIG", DEFAULT_CONFIG_PATH))
    _SETTINGS_CACHE[key] = settings
    return settings


def reset_settings_cache() -> None:
    """Vide le cache (utilisé par les tests)"""
    _SETTINGS_CACHE.clear()
