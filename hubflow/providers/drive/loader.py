"""
Workflow Loader - fetches workflow documents for execution and sub-workflows
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from hubflow.engine.errors import ParseError

from .client import DriveClient, DriveError, DriveFile, looks_like_file_id

logger = logging.getLogger('workflow.loader')

WORKFLOW_SUFFIXES = ("", ".yaml", ".yml")


class WorkflowLoader(ABC):
    """Resolves a workflow reference (id or path) to its YAML text"""

    @abstractmethod
    def load(self, reference: str) -> str:
        """
        Raises:
            ParseError: Workflow not found
        """
        pass


class DriveWorkflowLoader(WorkflowLoader):
    """Loads workflow documents from the Drive workspace"""

    def __init__(self, drive: DriveClient):
        self.drive = drive

    def load(self, reference: str) -> str:
        file = self._find(reference)
        if file is None:
            raise ParseError(f"Workflow not found: {reference}")
        logger.info(f"[LOADER] Loading workflow {file.name} ({file.id})")
        return self.drive.read_text(file.id)

    def _find(self, reference: str) -> Optional[DriveFile]:
        if looks_like_file_id(reference):
            try:
                return self.drive.get_file(reference)
            except DriveError as e:
                if e.status_code != 404:
                    raise
        suffixes = ("",) if reference.endswith((".yaml", ".yml")) else WORKFLOW_SUFFIXES
        for suffix in suffixes:
            found = self.drive.find_file_by_name(reference + suffix)
            if found is not None:
                return found
        return None
