"""Runbook ingestion.

Turns the markdown runbooks under RUNBOOK_DIR into alert-sized chunks and
writes them to the retrieval backend. One file per service: the file name
(without .md) is the service name, so runbooks/payment-service.md produces
chunks tagged service_name=payment-service.

Files are split on horizontal rules (a line of three or more hyphens). Each
resulting section becomes one document, which keeps retrieval precise: a
top_k of 2 returns two alerts, not two whole runbooks.
"""

import logging
import re
from pathlib import Path
from typing import Protocol

from retrieval.base import normalize_service_key
from schemas.documents import SERVICE_NAME_KEY, RetrievedDocument

logger = logging.getLogger(__name__)

_SECTION_BREAK = re.compile(r"^-{3,}\s*$", re.MULTILINE)
_ALERT_HEADER = re.compile(r"^##\s*Alert:\s*(.+?)\s*$", re.MULTILINE)


class DocumentSink(Protocol):
    def add_documents(self, docs: list[RetrievedDocument]) -> int: ...


def split_runbook(markdown: str, service_name: str) -> list[RetrievedDocument]:
    """Split one runbook into chunks.

    Args:
        markdown: Full runbook text.
        service_name: Owning service. Normalized before it is stored.

    Returns:
        One document per non-empty section, ids "<service>_alert_<n>"
        numbered from 0 in file order. Sections with an "## Alert:" header
        also carry it as "alert" metadata.
    """
    service_key = normalize_service_key(service_name)
    docs: list[RetrievedDocument] = []
    for section in _SECTION_BREAK.split(markdown):
        text = section.strip()
        if not text:
            continue
        metadata = {SERVICE_NAME_KEY: service_key}
        header = _ALERT_HEADER.search(text)
        if header:
            metadata["alert"] = header.group(1)
        docs.append(
            RetrievedDocument(
                id=f"{service_key}_alert_{len(docs)}",
                text=text,
                metadata=metadata,
            )
        )
    return docs


def load_runbooks(runbook_dir: str | Path) -> list[RetrievedDocument]:
    """Read and split every *.md file in runbook_dir, sorted by file name.

    Raises:
        FileNotFoundError: If runbook_dir does not exist.
    """
    root = Path(runbook_dir)
    if not root.is_dir():
        raise FileNotFoundError(f"Runbook directory not found: {root}")

    docs: list[RetrievedDocument] = []
    for path in sorted(root.glob("*.md")):
        chunks = split_runbook(path.read_text(encoding="utf-8"), path.stem)
        logger.info("Split %s into %d chunk(s).", path.name, len(chunks))
        docs.extend(chunks)
    return docs


def ingest_runbooks(runbook_dir: str | Path, sink: DocumentSink) -> int:
    """Load every runbook and upsert the chunks into sink.

    Returns:
        Number of chunks written.
    """
    docs = load_runbooks(runbook_dir)
    if not docs:
        logger.warning("No runbooks found in %s.", runbook_dir)
        return 0
    written = sink.add_documents(docs)
    logger.info("Ingested %d runbook chunk(s) from %s.", written, runbook_dir)
    return written
