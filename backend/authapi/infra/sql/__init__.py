from .sql_subject_directory import SqlSubjectDirectory
from .sql_token_store import SqlTokenStore

__all__ = ["SqlSubjectDirectory", "SqlTokenStore"]
