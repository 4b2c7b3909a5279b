# Agents module
from .chat_agent import ChatAgent, ChatReply
from .content_analyzer import AnalysisResult, ContentAnalyzer
from .groq_client import GroqClient, RemoteResult

__all__ = ['ChatAgent', 'ChatReply', 'AnalysisResult', 'ContentAnalyzer', 'GroqClient', 'RemoteResult']
