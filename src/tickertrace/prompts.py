"""Scripted prompts for the stock assistant dialogue.

Static fragments are wrapped in ``<helicone-prompt-static>`` and variable
inputs in ``<helicone-prompt-input>`` so the logging backend can group calls
by prompt template.
"""


class PromptIds:
    """Values sent as ``Helicone-Prompt-Id`` on completion calls."""

    INITIAL_GREETING = "initial-greeting"
    ANALYSIS_ACK = "analysis-ack"
    INITIAL_STOCK_ANALYSIS = "initial-stock-analysis"
    FINAL_STOCK_ANALYSIS = "final-stock-analysis"


def static(text: str) -> str:
    return f"<helicone-prompt-static>{text}</helicone-prompt-static>"


def prompt_input(key: str, value: str) -> str:
    return f'<helicone-prompt-input key="{key}">{value}</helicone-prompt-input>'


CHAT_SYSTEM_PROMPT = static(
    "You are a friendly stock market assistant. You can help users analyze stocks and "
    "answer general market questions. When users ask about specific stocks, you'll call "
    "the analysis agent to get detailed information."
)

AGENT_SYSTEM_PROMPT = static(
    "You are a stock analysis assistant. You help users make informed investment "
    "decisions by analyzing stocks using technical and fundamental data."
)

DATA_GATHERED = static("I've gathered all the necessary data. Let me analyze it for you.")

GREETING = "Hi! Can you help me analyze some stocks today?"


def analyze_request(ticker: str) -> str:
    return f"Can you analyze {ticker} stock for me?"


def compare_request(ticker: str) -> str:
    return f"Thanks! Can you compare this with {ticker}?"


def acknowledge_instruction(ticker: str) -> str:
    return (
        "First acknowledge the comparison request and indicate you'll begin analyzing "
        f"{prompt_input('ticker', ticker)}. Keep it brief and friendly."
    )


def agent_request(ticker: str) -> str:
    return f"Analyze {ticker} stock."
