from vigilance.analysis.analyzer import E2BAnalyzer
from vigilance.analysis.client_base import BaseChatClient
from vigilance.analysis.factory import ChatClientFactory
from vigilance.analysis.narrative_writer import NarrativeWriter

__all__ = ["BaseChatClient", "ChatClientFactory", "E2BAnalyzer", "NarrativeWriter"]
