from .client import DriveClient, DriveError, DriveFile, looks_like_file_id
from .loader import WorkflowLoader, DriveWorkflowLoader

__all__ = [
    'DriveClient',
    'DriveError',
    'DriveFile',
    'looks_like_file_id',
    'WorkflowLoader',
    'DriveWorkflowLoader',
]
