"""Practice content: text files and the language catalog."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import yaml

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent.parent / "data"

MISSING_RESOURCE_TEXT = "Error: the resource file could not be found."
READ_ERROR_TEXT = "Error: a problem occurred while reading the file."
EMPTY_RESOURCE_TEXT = "This is the default sample text. Please check the file contents."


@dataclass(frozen=True)
class LongText:
    title: str
    file: str


@dataclass(frozen=True)
class Language:
    key: str
    name: str
    sentence_file: str
    word_file: str
    long_texts: Tuple[LongText, ...]


_BUILTIN_LANGUAGES = (
    Language(
        key="ko",
        name="한국어",
        sentence_file="texts/typing_words_ko.txt",
        word_file="texts/mole_words_ko.txt",
        long_texts=(LongText("잊혀진 정원", "texts/typing_long_ko.txt"),),
    ),
    Language(
        key="en",
        name="English",
        sentence_file="texts/typing_words_en.txt",
        word_file="texts/mole_words_en.txt",
        long_texts=(LongText("The Little Prince (Excerpt)", "texts/typing_long_en.txt"),),
    ),
)


class TextRepository:
    """Reads practice text relative to a base directory.

    Neither loader raises: on any failure a human-readable placeholder is
    returned so callers always have something to type.
    """

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self._base_dir = base_dir or DATA_DIR

    def load_lines(self, key: str) -> List[str]:
        """Return the non-empty, trimmed lines of resource *key*."""
        path = self._base_dir / key
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.warning("Resource not found: %s", path)
            return [MISSING_RESOURCE_TEXT]
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Error while loading resource %s: %s", path, e)
            return [READ_ERROR_TEXT]
        lines = [line.strip() for line in raw.splitlines() if line.strip()]
        return lines or [EMPTY_RESOURCE_TEXT]

    def load_full_text(self, key: str) -> str:
        """Return resource *key* as one string, each line break replaced by a space."""
        path = self._base_dir / key
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.warning("Resource not found: %s", path)
            return f"{MISSING_RESOURCE_TEXT} {key}"
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Error while loading full text %s: %s", path, e)
            return f"Failed to load the text: {key}"
        return " ".join(raw.splitlines())


class LanguageCatalog:
    """Content sets keyed by language, loaded from ``languages.yaml``."""

    def __init__(self, path: Optional[Path] = None, languages: Optional[Sequence[Language]] = None) -> None:
        self._path = path or DATA_DIR / "languages.yaml"
        if languages is not None:
            self._languages = {lang.key: lang for lang in languages}
        else:
            self._languages = self._load_languages()

    @classmethod
    def builtin(cls) -> "LanguageCatalog":
        """Catalog of the bundled Korean and English content, no file read."""
        return cls(languages=_BUILTIN_LANGUAGES)

    def all(self) -> List[Language]:
        return list(self._languages.values())

    def get(self, key: str) -> Language:
        return self._languages[key]

    def keys(self) -> List[str]:
        return list(self._languages)

    def default(self) -> Language:
        return next(iter(self._languages.values()))

    def _load_languages(self) -> Dict[str, Language]:
        if not self._path.exists():
            logger.warning("Language catalog not found at %s, using built-in catalog", self._path)
            return {lang.key: lang for lang in _BUILTIN_LANGUAGES}

        try:
            raw = yaml.safe_load(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as e:
            raise ValueError(f"{self._path.name}: could not be read: {e}") from e
        except yaml.YAMLError as e:
            raise ValueError(f"{self._path.name}: invalid YAML: {e}") from e
        if not raw or not isinstance(raw, dict) or not isinstance(raw.get("languages"), list):
            raise ValueError(f"{self._path.name}: expected YAML with a 'languages' list")

        languages: Dict[str, Language] = {}
        for entry in raw["languages"]:
            if not isinstance(entry, dict):
                raise ValueError(f"{self._path.name}: each language must be a mapping")
            key = entry.get("key")
            name = entry.get("name")
            if not key or not isinstance(key, str):
                raise ValueError(f"{self._path.name}: missing or invalid 'key'")
            if not name or not isinstance(name, str):
                raise ValueError(f"{self._path.name}: {key}: missing or invalid 'name'")
            for required in ("sentences", "words"):
                if not entry.get(required):
                    raise ValueError(f"{self._path.name}: {key}: missing '{required}'")
            long_texts = []
            for item in entry.get("long_texts") or []:
                if not isinstance(item, dict) or not item.get("title") or not item.get("file"):
                    raise ValueError(f"{self._path.name}: {key}: long texts need 'title' and 'file'")
                long_texts.append(LongText(title=str(item["title"]).strip(), file=str(item["file"])))
            languages[key] = Language(
                key=key,
                name=name.strip(),
                sentence_file=str(entry["sentences"]),
                word_file=str(entry["words"]),
                long_texts=tuple(long_texts),
            )

        if not languages:
            raise ValueError(f"{self._path.name}: no languages defined")
        return languages


def load_catalog(path: Optional[Path] = None) -> LanguageCatalog:
    """Load the catalog at *path*, or the built-in one if it is unusable."""
    try:
        return LanguageCatalog(path)
    except ValueError as e:
        logger.warning("Ignoring language catalog: %s", e)
        return LanguageCatalog.builtin()
