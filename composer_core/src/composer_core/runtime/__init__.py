from composer_core.runtime.protocol import AgentRuntime, PhaseCallback, TurnInput

__all__ = ["AgentRuntime", "PhaseCallback", "TurnInput"]
