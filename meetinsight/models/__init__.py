from .user import User
from .meeting_record import MeetingRecord
from .transcript_version import TranscriptVersion
from .module_version import ModuleVersion
from .chat_message import ChatMessage
# base and mixins are imported by the above as needed
