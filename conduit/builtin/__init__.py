"""Built-in capability modules."""

from .chat import ChatModule
from .code import CodeModule, ProjectInfo

__all__ = ["ChatModule", "CodeModule", "ProjectInfo"]
