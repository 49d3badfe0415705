from fastapi import FastAPI, HTTPException
from pydantic import BaseModel
import uuid

app = FastAPI(title="Mock Notification Server", version="1.0.0")

# Accepted messages, newest last; reset on restart
SENT = []


class Message(BaseModel):
    to: str
    channel: str
    message: str


@app.get("/health")
def health(): return {"status": "ok"}

@app.post("/messages")
def send_message(body: Message):
    # Recipients containing "fail" simulate a gateway outage
    if "fail" in body.to:
        raise HTTPException(status_code=502, detail="upstream provider unavailable")
    message_id = str(uuid.uuid4())
    SENT.append({"message_id": message_id, **body.model_dump()})
    return {"message_id": message_id, "status": "queued"}

@app.get("/messages")
def list_messages(to: str | None = None):
    return [m for m in SENT if to is None or m["to"] == to]
