# ollama_chat/ui/chat_ui.py
import asyncio
from typing import Dict, List, Optional

import gradio as gr
from loguru import logger

from ..app.log import configure_logging
from ..app.settings import get_settings
from .bridge_client import BridgeClient
from .session import ChatSession

cfg = get_settings()

SUGGESTED_PROMPTS = [
    ("💻 Code Review", "Review this code and suggest improvements for better performance and readability"),
    ("📄 Documentation", "Help me write comprehensive documentation for this project"),
    ("💡 Problem Solving", "I need help solving a complex technical problem. Can you guide me through it?"),
    ("⚡ Optimization", "How can I optimize this system for better performance and scalability?"),
]

DISCONNECTED_WARNING = "⚠️ Please ensure Ollama is running locally on port 11434"
THINKING = "⏳ _Thinking..._"

# Sends wait on Ollama for up to the read timeout; one tab must not hold up the others
SEND_CONCURRENCY = None

_bridge: Optional[BridgeClient] = None
# browser tab (gradio session hash) -> its conversation
SESSIONS: Dict[str, ChatSession] = {}


def get_bridge() -> BridgeClient:
    # one HTTP client shared by every browser session
    global _bridge
    if _bridge is None:
        _bridge = BridgeClient.from_settings(cfg)
    return _bridge


def get_session(request: gr.Request) -> ChatSession:
    session = SESSIONS.get(request.session_hash)
    if session is None:
        session = ChatSession(get_bridge(), default_model=cfg.ollama.default_model)
        SESSIONS[request.session_hash] = session
    return session


def chat_messages(session: ChatSession) -> List[dict]:
    """Chatbot rows: each message with its send time, plus a placeholder while a reply is pending."""
    rows = [
        {"role": m.role, "content": f"{m.content}\n\n<sub>{m.time_label}</sub>"}
        for m in session.messages
    ]
    if session.loading:
        rows.append({"role": "assistant", "content": THINKING})
    return rows


def can_send(session: ChatSession, text: str) -> bool:
    return session.connected and not session.loading and bool((text or "").strip())


def render(session: ChatSession):
    """Everything on screen, derived from the session. Order matches OUTPUTS below."""
    has_messages = bool(session.messages)
    can_type = session.connected and not session.loading
    return (
        gr.update(value=chat_messages(session), visible=has_messages),
        gr.update(visible=not has_messages),
        f"Currently using: **{session.selected_model}**",
        "🟢 **Connected**" if session.connected else "🔴 **Disconnected**",
        gr.update(visible=has_messages),
        gr.update(choices=session.model_choices(), value=session.selected_model),
        gr.update(value=session.pending_input, interactive=can_type),
        gr.update(interactive=can_send(session, session.pending_input)),
        gr.update(visible=not session.connected),
    )


async def _submit_and_render(session: ChatSession, text: Optional[str] = None):
    submitting = asyncio.ensure_future(session.submit(text))
    # submit() appends the user message before its first await
    await asyncio.sleep(0)
    yield render(session)
    await submitting
    yield render(session)


async def on_load(request: gr.Request):
    session = get_session(request)
    await session.start()
    return render(session)


async def on_send(text: str, request: gr.Request):
    session = get_session(request)
    session.pending_input = text or ""
    async for view in _submit_and_render(session):
        yield view


def send_prompt(prompt: str):
    async def handler(request: gr.Request):
        async for view in _submit_and_render(get_session(request), prompt):
            yield view
    return handler


def on_input(text: str, request: gr.Request):
    session = get_session(request)
    session.pending_input = text or ""
    return gr.update(interactive=can_send(session, session.pending_input))


def on_select_model(name: str, request: gr.Request):
    session = get_session(request)
    if not session.select_model(name):
        logger.warning("Ignoring unknown model {!r}", name)
    return render(session)


def on_clear(request: gr.Request):
    session = get_session(request)
    session.reset()
    return render(session)


def on_unload(request: gr.Request):
    SESSIONS.pop(request.session_hash, None)


with gr.Blocks(title="Ollama AI Assistant") as demo:
    with gr.Row():
        with gr.Column(scale=3):
            gr.Markdown("# 🤖 Ollama AI Assistant\n_Professional AI Chat Interface_")
        with gr.Column(scale=2):
            model_dd = gr.Dropdown(label="Model", choices=[], interactive=True)
        with gr.Column(scale=1, min_width=140):
            status = gr.Markdown("🔴 **Disconnected**")
            clear = gr.Button("Clear Chat", size="sm", visible=False)

    with gr.Column() as welcome:
        gr.Markdown("## ✨ Welcome to Ollama AI\nYour professional AI assistant powered by local Ollama models.")
        using = gr.Markdown(f"Currently using: **{cfg.ollama.default_model}**")
        prompt_buttons = []
        with gr.Row():
            for title, prompt in SUGGESTED_PROMPTS:
                with gr.Column(min_width=200):
                    prompt_buttons.append((gr.Button(title), prompt))
                    gr.Markdown(prompt)

    chat = gr.Chatbot(type="messages", height=500, autoscroll=True, visible=False, show_label=False)

    with gr.Row():
        msg = gr.Textbox(placeholder="Ask me anything...", show_label=False, scale=8, interactive=False)
        send = gr.Button("Send", variant="primary", scale=1, interactive=False)
    warning = gr.Markdown(DISCONNECTED_WARNING)

    OUTPUTS = [chat, welcome, using, status, clear, model_dd, msg, send, warning]

    demo.load(on_load, None, OUTPUTS)
    msg.input(on_input, [msg], [send])
    msg.submit(on_send, [msg], OUTPUTS, concurrency_limit=SEND_CONCURRENCY)
    send.click(on_send, [msg], OUTPUTS, concurrency_limit=SEND_CONCURRENCY)
    for button, prompt in prompt_buttons:
        button.click(send_prompt(prompt), None, OUTPUTS, concurrency_limit=SEND_CONCURRENCY)
    model_dd.input(on_select_model, [model_dd], OUTPUTS)
    clear.click(on_clear, None, OUTPUTS)
    demo.unload(on_unload)

if __name__ == "__main__":
    configure_logging(cfg.logging.level)
    demo.queue(default_concurrency_limit=SEND_CONCURRENCY).launch(server_name=cfg.ui.host, server_port=cfg.ui.port)
