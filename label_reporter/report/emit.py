"""Write a finalized bundle as archival document and flat record stream."""

import json
import os
import stat
import sys
import tempfile
from typing import Any, Dict, List, Optional, TextIO

from label_reporter.config import LABEL_PREFIX
from label_reporter.context import ReporterOptions
from label_reporter.exceptions import ReportWriteError
from label_reporter.logging_config import get_logger
from label_reporter.report.hierarchy import hierarchy_document
from label_reporter.runner.aggregate import Bundle

logger = get_logger("report")

APP_KEY = LABEL_PREFIX + "app"

# (bundle attribute, status tag) in stream order
_TEST_GROUPS = (
    ("pending", "pending"),
    ("failures", "failure"),
    ("passes", "pass"),
)


def archival_document(bundle: Bundle) -> Dict[str, Any]:
    return {
        "stats": bundle.stats.to_dict(),
        "tests": bundle.tests,
        "pending": bundle.pending,
        "failures": bundle.failures,
        "passes": bundle.passes,
    }


def flat_records(bundle: Bundle) -> List[Dict[str, Any]]:
    """Stats record first, then every pending, failed and passed test."""
    ctx = bundle.context
    records = [
        {
            APP_KEY: ctx.app,
            "runId": ctx.run_id,
            "dataType": "stats",
            **bundle.suite_labels,
            **bundle.stats.to_dict(),
        }
    ]
    for attr, status in _TEST_GROUPS:
        for record in getattr(bundle, attr):
            records.append(
                {
                    APP_KEY: ctx.app,
                    "runId": ctx.run_id,
                    "dataType": "test",
                    "status": status,
                    **record,
                }
            )
    return records


def _file_mode(path: str) -> int:
    """Mode of the existing target, else what the umask gives a new file."""
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def _write_atomic(path: str, text: str) -> None:
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".label-report-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        # mkstemp creates owner-only files
        os.chmod(tmp_path, _file_mode(path))
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


class BundleEmitter:
    """Routes a bundle to the file sinks and the console stream."""

    def __init__(self, options: Optional[ReporterOptions] = None, stream: Optional[TextIO] = None):
        self.options = options or ReporterOptions()
        self.stream = stream

    def emit(self, bundle: Bundle) -> str:
        """Write every output of ``bundle``; return the archival document path.

        All outputs are serialized before anything is written, so a
        serialization error leaves no partial report behind.
        """
        if self.options.hierarchy:
            document = hierarchy_document(bundle)
        else:
            document = archival_document(bundle)
        records = flat_records(bundle)

        document_text = json.dumps(document, ensure_ascii=False, indent=2)
        lines = [json.dumps(record, ensure_ascii=False) for record in records]
        records_text = None
        if self.options.records_output:
            records_text = json.dumps(records, ensure_ascii=False, indent=2)

        output = self.options.output_path
        self._write_file(output, document_text)
        if records_text is not None:
            self._write_file(self.options.records_output, records_text)

        if self.options.console:
            stream = self.stream or sys.stdout
            try:
                for line in lines:
                    stream.write(line + "\n")
                stream.flush()
            except OSError as e:
                logger.error(f"Writing record stream failed: {e}", extra={"error": str(e)})
                raise ReportWriteError(f"Writing record stream failed: {e}") from e

        logger.info(
            f"Wrote report for run {bundle.context.run_id} to {output} ({len(records)} records)",
            extra={"run_id": bundle.context.run_id, "output": output, "records": len(records)},
        )
        return output

    def _write_file(self, path: str, text: str) -> None:
        try:
            _write_atomic(path, text)
        except OSError as e:
            logger.error(f"Writing {path} failed: {e}", extra={"output": path, "error": str(e)})
            raise ReportWriteError(f"Writing {path} failed: {e}") from e
        logger.debug(f"Wrote {path}", extra={"output": path})
