"""Mock chat-completions server with deterministic verdicts for local runs and e2e tests"""

import json
import re
from fastapi import FastAPI, HTTPException, Request

app = FastAPI(title="Mock Reasoner Server", version="1.0.0")

RESPONSIBLE_WORDS = ("grocer", "pharmacy", "rent", "electric", "utility", "bus", "transit", "doctor")
IRRESPONSIBLE_WORDS = ("casino", "gucci", "lottery", "luxury", "designer")
NECESSITY_WORDS = ("need", "emergency", "medical", "work", "rent", "gift", "repair")

# Merchants that trigger failure modes
ERROR_MERCHANT = "trigger-error"
GARBAGE_MERCHANT = "trigger-garbage"


def _field(prompt: str, name: str) -> str:
    match = re.search(rf"^{name}: (.*)$", prompt, re.MULTILINE)
    return match.group(1).strip() if match else ""


def _classify(prompt: str) -> dict:
    text = f"{_field(prompt, 'Merchant')} {_field(prompt, 'Description')}".lower()
    if any(word in text for word in IRRESPONSIBLE_WORDS):
        classification = "irresponsible"
    elif any(word in text for word in RESPONSIBLE_WORDS):
        classification = "responsible"
    else:
        classification = "neutral"
    return {
        "classification": classification,
        "reflection": f"Mock verdict: {classification}",
        "confidence": 0.9,
        "reasoning": "keyword match",
        "improvement_suggestion": None,
    }


def _judge(prompt: str) -> dict:
    explanation = _field(prompt, "User explanation").lower()
    is_valid = any(word in explanation for word in NECESSITY_WORDS)
    return {
        "isValid": is_valid,
        "reasoning": "necessity keyword" if is_valid else "no necessity keyword",
        "newReflection": "Makes sense." if is_valid else "Try to plan ahead next time.",
    }


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/v1/chat/completions")
async def chat_completions(request: Request):
    body = await request.json()
    prompt = next((m["content"] for m in body.get("messages", []) if m.get("role") == "user"), "")
    merchant = _field(prompt, "Merchant").lower()

    if merchant == ERROR_MERCHANT:
        raise HTTPException(status_code=503, detail="model overloaded")
    if merchant == GARBAGE_MERCHANT:
        content = "I am not sure what you mean."
    elif "User explanation:" in prompt:
        content = json.dumps(_judge(prompt))
    else:
        content = json.dumps(_classify(prompt))

    return {
        "id": "mock-completion",
        "object": "chat.completion",
        "model": body.get("model", "mock"),
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
    }
