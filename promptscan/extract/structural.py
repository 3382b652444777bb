"""Structural extractor running the Python AST visitor as a child process."""

from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path
from typing import Any, List, Optional, Sequence

from ..logging import get_logger
from ..models import PromptArtifact, normalize_role

_ENTRYPOINT_MODULE = "promptscan.extract.python_visitor"
_PACKAGE_PARENT = Path(__file__).resolve().parents[2]


class StructuralExtractor:
    """Extracts role-tagged prompt literals from Python sources.

    Parsing happens in a separate interpreter so a pathological file cannot
    take the calling process down with it. Any failure of that process
    (non-zero exit, timeout, unparsable output) yields no artifacts.
    """

    DEFAULT_TIMEOUT = 120.0

    def __init__(
        self,
        python_executable: str | None = None,
        *,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
    ) -> None:
        self.python_executable = python_executable or sys.executable
        self.timeout = timeout
        self.logger = get_logger("extract.structural")

    def extract(self, root: str | Path, files: Sequence[str] = ()) -> List[PromptArtifact]:
        """Return artifacts for ``files`` (paths relative to ``root``).

        An empty ``files`` sequence lets the child process discover every
        ``*.py`` file under ``root`` itself.
        """
        # -P: the working directory never lands on the child's sys.path.
        args = [self.python_executable, "-P", "-m", _ENTRYPOINT_MODULE, str(Path(root).resolve())]
        try:
            completed = subprocess.run(
                args,
                input="\n".join(files),
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
                cwd=str(_PACKAGE_PARENT),
                env=_child_env(),
            )
        except FileNotFoundError:
            self.logger.warning("Python interpreter '%s' not found; skipping structural extraction", self.python_executable)
            return []
        except subprocess.TimeoutExpired:
            self.logger.warning("Structural extractor timed out after %ss", self.timeout)
            return []
        except OSError as exc:
            self.logger.warning("Structural extractor could not start: %s", exc)
            return []

        if completed.returncode != 0:
            self.logger.warning(
                "Structural extractor failed with exit code %d: %s",
                completed.returncode,
                (completed.stderr or "").strip()[:500],
            )
            return []

        try:
            payload = json.loads(completed.stdout)
        except json.JSONDecodeError:
            self.logger.warning("Structural extractor returned invalid JSON")
            return []
        if not isinstance(payload, list):
            self.logger.warning("Structural extractor returned %s instead of a list", type(payload).__name__)
            return []

        artifacts = [artifact for artifact in map(_artifact_from_payload, payload) if artifact is not None]
        self.logger.debug("Structural extractor produced %d artifacts", len(artifacts))
        return artifacts


def _child_env() -> dict[str, str]:
    # The child must import this same copy of the package.
    env = dict(os.environ)
    # Empty entries mean "current directory"; drop them.
    inherited = [item for item in env.get("PYTHONPATH", "").split(os.pathsep) if item]
    env["PYTHONPATH"] = os.pathsep.join([str(_PACKAGE_PARENT), *inherited])
    return env


def _artifact_from_payload(item: Any) -> Optional[PromptArtifact]:
    if not isinstance(item, dict):
        return None
    text = item.get("text")
    file_path = item.get("filePath")
    line = item.get("line")
    if not isinstance(text, str) or not text:
        return None
    if not isinstance(file_path, str) or not isinstance(line, int) or isinstance(line, bool) or line < 1:
        return None
    function_name = item.get("functionName")
    call_signature = item.get("callSignature")
    return PromptArtifact(
        role=normalize_role(item.get("role")),
        text=text,
        file_path=file_path,
        line=line,
        source_kind="structural",
        function_name=function_name if isinstance(function_name, str) else None,
        call_signature=call_signature if isinstance(call_signature, str) else None,
    )


__all__ = ["StructuralExtractor"]
