"""Chat-bot front end for mock interviews and résumé analysis."""
from .interview_flow import STILL_PROCESSING, InterviewBot
from .session_cache import BotSessionCache, ChatState

__all__ = ["BotSessionCache", "ChatState", "InterviewBot", "STILL_PROCESSING"]
