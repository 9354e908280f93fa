# 在此导入模型，便于从包中直接使用
from .user import User, Role, REGISTRABLE_ROLES
from .profiles import Patient, Doctor
from .log import SystemLog, LogType
from .notes import Note
from .history import PatientHistory
from .metrics import ProgressMetric
from .questions import Question, QuestionAssignment, Answer, AssignmentStatus
from .resources import Resource, ResourceAssignment
from .payments import Payment
from .sessions import TherapySession, SessionStatus
from .sharing import SharingGrant, PermissionLevel, GrantState, AccessAction, DuplicateGrant
from .ai_log import AIInteractionLog
