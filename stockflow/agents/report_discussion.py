"""
Report discussion agent.

Answers questions about the stock performance report the user has on screen,
and runs the general-purpose StockFlow assistant chat.

Functions:
- to_chat_history: Converts frontend chat messages to LangChain message tuples
- stream_report_answer: Streams an answer grounded in the report content
- stream_assistant_answer: Streams a general market assistant answer
"""

from typing import Any, AsyncIterator, Dict, List, Optional, Tuple
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder
from langchain_core.output_parsers import StrOutputParser
from stockflow.utils.llm import get_llm
from stockflow.config import InvalidRequest

REPORT_SYSTEM_PROMPT = """You are StockFlow AI, an expert financial analyst helping users understand stock performance reports.

The user has a stock performance report displayed on their screen with the following content:

{report_context}

Answer the user's questions about this report accurately and concisely. Reference specific data points from the report when relevant."""

ASSISTANT_SYSTEM_PROMPT = """You are StockFlow AI, an expert financial advisor and stock market analyst. You help users with:

1. Stock analysis and recommendations
2. Market trends and insights
3. Trading strategies and advice
4. Portfolio management guidance
5. Financial education and explanations

Key guidelines:
- Provide accurate, helpful financial information
- Always include disclaimers about investment risks
- Use clear, professional language
- Suggest users do their own research before making investment decisions
- Be conversational but authoritative"""

REPORT_MAX_TOKENS = 800


def _message_text(message: Dict[str, Any]) -> str:
    """Text of a chat message; supports plain `content` and `parts` lists."""
    content = message.get("content")
    if isinstance(content, str):
        return content
    parts = message.get("parts") or content or []
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict) and p.get("type", "text") == "text")


def to_chat_history(messages: Optional[List[Dict[str, Any]]]) -> List[Tuple[str, str]]:
    """
    Convert frontend messages to LangChain (role, content) tuples.

    Accepts both {type: "user"|"assistant"} (report discussion history)
    and {role: "user"|"assistant"|"system"} (assistant chat) messages.

    Example:
        to_chat_history([{"type": "user", "content": "Why did margins drop?"}])
        # Returns: [("human", "Why did margins drop?")]
    """
    history = []
    for message in messages or []:
        if not isinstance(message, dict):
            continue
        role = message.get("role") or message.get("type")
        text = _message_text(message)
        if not text:
            continue
        if role == "system":
            continue  # the system prompt is ours
        history.append(("human" if role == "user" else "ai", text))
    return history


def stream_report_answer(
    question: str,
    report_context: str,
    conversation_history: Optional[List[Dict[str, Any]]] = None,
) -> AsyncIterator[str]:
    """
    Stream an answer about the on-screen report.

    Args:
        question: The user's question
        report_context: Report content shown to the user
        conversation_history: Earlier turns as [{type, content}]

    Returns:
        Async iterator of answer text chunks
    """
    llm = get_llm(max_tokens=REPORT_MAX_TOKENS)

    prompt = ChatPromptTemplate.from_messages([
        ("system", REPORT_SYSTEM_PROMPT),
        MessagesPlaceholder("history"),
        ("human", "{question}"),
    ])

    chain = prompt | llm | StrOutputParser()

    return chain.astream({
        "report_context": report_context,
        "history": to_chat_history(conversation_history),
        "question": question,
    })


def stream_assistant_answer(messages: List[Dict[str, Any]]) -> AsyncIterator[str]:
    """Stream a general StockFlow assistant reply to a chat transcript."""
    history = to_chat_history(messages)
    if not history:
        raise InvalidRequest("At least one message is required")

    prompt = ChatPromptTemplate.from_messages([
        ("system", ASSISTANT_SYSTEM_PROMPT),
        MessagesPlaceholder("messages"),
    ])

    chain = prompt | get_llm() | StrOutputParser()

    return chain.astream({"messages": history})
