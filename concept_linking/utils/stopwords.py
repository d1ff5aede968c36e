import logging
from importlib import resources
from pathlib import Path
from typing import FrozenSet, Iterable, Union

logger = logging.getLogger(__name__)


def parse_stopwords(lines: Iterable[str]) -> FrozenSet[str]:
    """Lower-cased stopwords, one per line; blank lines and # comments are skipped."""
    words = set()
    for line in lines:
        word = line.strip()
        if word and not word.startswith("#"):
            words.add(word.lower())
    return frozenset(words)


def load_stopword_file(path: Union[str, Path]) -> FrozenSet[str]:
    with Path(path).open(encoding="utf-8") as f:
        stopwords = parse_stopwords(f)
    logger.info(f"Loaded {len(stopwords)} stopwords from {path}")
    return stopwords


def load_default_stopwords() -> FrozenSet[str]:
    """Load the English stopword list shipped with the package."""
    text = (
        resources.files("concept_linking")
        .joinpath("resources/stopwords-en.txt")
        .read_text(encoding="utf-8")
    )
    return parse_stopwords(text.splitlines())
