"""Adapters for converting framework-specific messages to raw agent messages.

Available adapters:
    - LangChainAdapter: Converts LangChain messages (HumanMessage, AIMessage, etc.)

Usage:
    ```python
    from composer_core.adapters.langchain import LangChainAdapter
    from composer_core.transformer import map_messages
    from langchain_core.messages import HumanMessage, AIMessage

    adapter = LangChainAdapter()
    transcript = map_messages(adapter.convert([
        HumanMessage(content="Hello", id="h1"),
        AIMessage(content="Hi there!", id="a1"),
    ]))
    ```
"""

from composer_core.adapters.langchain import LangChainAdapter
from composer_core.adapters.protocol import RawMessageAdapter

__all__ = ["LangChainAdapter", "RawMessageAdapter"]
