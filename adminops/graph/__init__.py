from adminops.graph.auth import Credential, MsalTokenProvider, TokenProvider
from adminops.graph.session import GraphSession

__all__ = ["Credential", "GraphSession", "MsalTokenProvider", "TokenProvider"]
