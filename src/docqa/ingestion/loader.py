"""Document loaders — extension-keyed wrappers around LangChain document loaders."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import TYPE_CHECKING

from langchain_core.document_loaders import BaseLoader

from docqa.config import Settings, settings as default_settings
from docqa.exceptions import DocumentLoadError

if TYPE_CHECKING:
    from langchain_core.documents import Document

logger = logging.getLogger(__name__)

LoaderFactory = Callable[[str, Settings], BaseLoader]


def _json_loader(path: str, cfg: Settings) -> BaseLoader:
    from langchain_community.document_loaders import JSONLoader

    return JSONLoader(path, jq_schema=cfg.json_jq_schema, text_content=True)


def _jsonl_loader(path: str, cfg: Settings) -> BaseLoader:
    from langchain_community.document_loaders import JSONLoader

    return JSONLoader(path, jq_schema=cfg.jsonl_jq_schema, text_content=True, json_lines=True)


def _text_loader(path: str, cfg: Settings) -> BaseLoader:
    from langchain_community.document_loaders import TextLoader

    return TextLoader(path, encoding="utf-8")


class _CSVColumnLoader(BaseLoader):
    """One document per CSV row whose text is the bare value of *column*.

    ``CSVLoader`` renders content columns as ``column: value`` lines; the
    label is dropped so it never reaches chunks, embeddings or prompts.
    """

    def __init__(self, path: str, column: str) -> None:
        self.path = path
        self.column = column

    def lazy_load(self) -> Iterator[Document]:
        from langchain_community.document_loaders import CSVLoader

        label = f"{self.column}: "
        for document in CSVLoader(self.path, content_columns=[self.column], encoding="utf-8").lazy_load():
            document.page_content = document.page_content.removeprefix(label)
            yield document


def _csv_loader(path: str, cfg: Settings) -> BaseLoader:
    return _CSVColumnLoader(path, cfg.csv_content_column)


def _docx_loader(path: str, cfg: Settings) -> BaseLoader:
    from langchain_community.document_loaders import Docx2txtLoader

    return Docx2txtLoader(path)


def _pdf_loader(path: str, cfg: Settings) -> BaseLoader:
    from langchain_community.document_loaders import PyPDFLoader

    return PyPDFLoader(path)


# The parser dependencies (jq, docx2txt, pypdf) are only imported when a
# file of that type is actually loaded.
LOADER_REGISTRY: dict[str, LoaderFactory] = {
    ".json": _json_loader,
    ".jsonl": _jsonl_loader,
    ".txt": _text_loader,
    ".csv": _csv_loader,
    ".docx": _docx_loader,
    ".pdf": _pdf_loader,
}


def supported_extensions() -> list[str]:
    """Return the file extensions the corpus loader understands."""
    return sorted(LOADER_REGISTRY)


def load_file(path: str | Path, cfg: Settings | None = None) -> list[Document]:
    """Load a single file with the loader registered for its extension.

    Raises
    ------
    DocumentLoadError
        If the extension is not registered or the parser fails.
    """
    cfg = cfg or default_settings
    path = Path(path)
    factory = LOADER_REGISTRY.get(path.suffix.lower())
    if factory is None:
        raise DocumentLoadError(f"No loader registered for {path.suffix!r} ({path})")

    try:
        documents = factory(str(path), cfg).load()
    except Exception as exc:
        raise DocumentLoadError(f"Failed to load {path}: {exc}") from exc

    for doc in documents:
        doc.metadata.setdefault("source", str(path))
    return documents


def load_directory(path: str | Path, cfg: Settings | None = None) -> list[Document]:
    """Recursively load every supported document under *path*.

    Files are visited in sorted path order so that a fixed corpus always
    yields the same document sequence.  Files with an unsupported
    extension are skipped with a warning; any parse failure aborts the
    whole load.

    Parameters
    ----------
    path:
        Root directory containing source documents.
    cfg:
        Settings carrying the loader knobs (JSON / CSV field selection).

    Returns
    -------
    list[Document]
        Flat list of LangChain ``Document`` objects with metadata.
    """
    root = Path(path)
    if not root.is_dir():
        raise DocumentLoadError(f"Document directory not found: {root}")

    documents: list[Document] = []
    for file_path in sorted(p for p in root.rglob("*") if p.is_file()):
        relative = file_path.relative_to(root)
        if any(part.startswith(".") for part in relative.parts):
            continue
        if file_path.suffix.lower() not in LOADER_REGISTRY:
            logger.warning("Skipping unsupported file %s", file_path)
            continue
        loaded = load_file(file_path, cfg)
        logger.debug("Loaded %d document(s) from %s", len(loaded), file_path)
        documents.extend(loaded)
    return documents
