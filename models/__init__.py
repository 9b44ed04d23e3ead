from .user import User
from .division_user import DivisionUser
from .task import Task
from .subtask import Subtask
from .tag import Tag, TaskTag
from .file_attachment import FileAttachment
from .task_history import TaskHistory
from .schemas import SubtaskIn, TaskCreate, TaskUpdate
