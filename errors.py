class TubeStrategyError(Exception):
    pass


class MissingCredentialError(TubeStrategyError):
    """Raised when a workflow needs an API key that is not configured."""

    def __init__(self, service: str):
        self.service = service
        super().__init__(f"{service} API key is not set")


class ChannelNotFoundError(TubeStrategyError):
    def __init__(self, query: str):
        self.query = query
        super().__init__(f"Channel not found: {query}")


class GatewayError(TubeStrategyError):
    """A remote YouTube call failed (network or HTTP error)."""


class ResponseDecodeError(GatewayError):
    """A remote response lacked fields required to build a record."""


class AIGenerationError(TubeStrategyError):
    """Report generation failed or returned an unusable structure."""
