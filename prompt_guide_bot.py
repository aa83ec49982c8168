# prompt_guide_bot.py
import os
import logging

import markdown

import code_generator

MODEL = os.getenv("PROMPT_GUIDE_MODEL", "")
MAX_TOKENS = 1200

SYSTEM = (
    "You are the help-centre assistant of a prompt marketplace. Answer ONLY questions about "
    "writing, pricing and publishing prompts on the marketplace and about using the AI code "
    "generator. When an example helps, give a short, ready-to-use prompt in a fenced block."
)

CONTEXT_HINTS = {
    "writing": "The user is drafting a new prompt listing.",
    "pricing": "The user is deciding whether and how to charge for a prompt.",
    "codegen": "The user is writing instructions for the AI code generator.",
}


def _log_prompt(model, system_text, user_text):
    logging.info("MODEL: %s", model or "(default)")
    logging.debug("SYSTEM PROMPT:\n%s", system_text)
    logging.debug("USER PROMPT:\n%s", user_text)


def ask_prompt_guide(message: str, context_type: str = ""):
    if not message or not message.strip():
        return "Please enter a question."

    hint = CONTEXT_HINTS.get(context_type, "")
    user = f"ContextType: {context_type or 'Any'}\n{hint}\nUser Query: {message.strip()}"

    try:
        _log_prompt(MODEL, SYSTEM, user)
        raw_answer = code_generator.call_model(
            user, MODEL or None, max_tokens=MAX_TOKENS, temperature=0.2, system=SYSTEM
        )
    except (RuntimeError, ValueError) as e:
        logging.error("PromptGuide ERROR: %r", e)
        return f"Error: {e}"

    html_answer = markdown.markdown(raw_answer, extensions=["fenced_code", "tables"])
    return {"answer": html_answer, "html": True}
