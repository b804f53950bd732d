"""Pytest fixtures: in-memory storage and a fake chat gateway."""

import asyncio
import json
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from httpx import ASGITransport, AsyncClient

from chatsync.config import Settings
from chatsync.db.connection import DatabaseConnection
from chatsync.db.repositories.kv import KeyValueRepository
from chatsync.db.repositories.secret import SecretStore
from chatsync.gateway.auth import AuthClient
from chatsync.gateway.chat import ChatClient
from chatsync.gateway.rooms import RoomClient
from chatsync.models.session import Session, SessionState
from chatsync.utils.timestamps import format_timestamp

BASE_URL = "http://test"
BASE_TIME = datetime(2024, 5, 1, 12, 0, 0)


def ts(minutes: int) -> str:
    """Gateway timestamp ``minutes`` after a fixed base time."""
    return format_timestamp(BASE_TIME + timedelta(minutes=minutes))


async def eventually(predicate, timeout: float = 1.0) -> None:
    """Wait until ``predicate()`` holds, failing the test after ``timeout`` seconds."""
    async def poll():
        while not predicate():
            await asyncio.sleep(0.005)
    await asyncio.wait_for(poll(), timeout)


class FakeGateway:
    """In-memory stand-in for the chat backend."""

    def __init__(self):
        self.accounts: Dict[str, Dict[str, str]] = {
            "alice": {"id": "u-alice", "password": "secret", "displayName": "Alice"},
            "bob": {"id": "u-bob", "password": "hunter2", "displayName": "Bob"},
        }
        self.tokens: Dict[str, str] = {"token-alice": "alice", "token-bob": "bob"}
        self.users: List[Dict[str, Any]] = [
            {"id": "u-alice", "name": "Alice", "pictureUrl": ""},
            {"id": "u-bob", "name": "Bob", "pictureUrl": "/images/bob.png"},
            {"id": "u-carol", "name": "Carol", "pictureUrl": None},
        ]
        self.users_shape = "wrapped"
        self.login_omits_token = False

        self.chats: Dict[int, Dict[str, Any]] = {}
        self.rooms: Dict[int, Dict[str, Any]] = {}
        self.next_chat_id = 100
        self.next_room_id = 500
        self.next_message_id = 1000

        self.forced: Dict[str, Any] = {}
        self.calls: List[str] = []
        self.last_headers: Dict[str, str] = {}
        self.last_register_form: Dict[str, Any] = {}
        self.last_room_form: Dict[str, Any] = {}
        self.last_private_body: Optional[bytes] = None
        self.last_send_body: Optional[Dict[str, Any]] = None

    # === Scenario helpers ===

    def force(self, endpoint: str, status_code: int, body: Optional[Dict[str, Any]] = None) -> None:
        self.forced[endpoint] = (status_code, body or {})

    def add_chat(
        self,
        name: str,
        member_ids: List[str],
        messages: Optional[List[Dict[str, Any]]] = None,
        kind: int = 0,
        chat_id: Optional[int] = None
    ) -> Dict[str, Any]:
        if chat_id is None:
            chat_id = self.next_chat_id
            self.next_chat_id += 1
        chat = {
            "id": chat_id,
            "name": name,
            "pictureUrl": "",
            "type": kind,
            "users": [{"userId": member_id, "role": 0} for member_id in member_ids],
            "messages": list(messages or []),
        }
        self.chats[chat_id] = chat
        return chat

    def add_message(self, chat_id: int, text: str, name: str = "Bob", timestamp: Optional[str] = None) -> Dict[str, Any]:
        message = {
            "id": self.next_message_id,
            "text": text,
            "name": name,
            "timestamp": timestamp or format_timestamp(datetime.now()),
        }
        self.next_message_id += 1
        self.chats[chat_id]["messages"].append(message)
        return message

    def add_room(self, name: str, member_names: List[str], room_id: Optional[int] = None) -> Dict[str, Any]:
        if room_id is None:
            room_id = self.next_room_id
            self.next_room_id += 1
        room = {
            "id": room_id,
            "name": name,
            "pictureUrl": None,
            "memberCount": len(member_names),
            "createdBy": "u-alice",
            "createdAt": ts(0),
            "members": [
                {"id": self.accounts[n]["id"], "username": n, "profilePicture": None, "joinedAt": ts(0)}
                for n in member_names
            ],
        }
        self.rooms[room_id] = room
        return room

    # === ASGI app ===

    def _caller(self, request: Request) -> Optional[str]:
        header = request.headers.get("authorization", "")
        if not header.startswith("Bearer "):
            return None
        return self.tokens.get(header[len("Bearer "):])

    def _guard(self, endpoint: str, request: Request, authenticated: bool = True):
        self.calls.append(endpoint)
        self.last_headers = dict(request.headers)
        if endpoint in self.forced:
            status_code, body = self.forced[endpoint]
            return JSONResponse(status_code=status_code, content=body)
        if authenticated and self._caller(request) is None:
            return JSONResponse(status_code=401, content={"message": "Unauthorized"})
        return None

    def build_app(self) -> FastAPI:
        app = FastAPI()
        gateway = self

        @app.post("/api/Account/Register")
        async def register(request: Request):
            rejected = gateway._guard("register", request, authenticated=False)
            if rejected is not None:
                return rejected
            form = await request.form()
            gateway.last_register_form = {key: form.get(key) for key in form.keys()}
            picture = form.get("ProfilePicture")
            if picture is not None and hasattr(picture, "read"):
                gateway.last_register_form["ProfilePicture"] = {
                    "filename": picture.filename,
                    "content_type": picture.content_type,
                    "data": await picture.read(),
                }
            user_name = form.get("UserName")
            if user_name in gateway.accounts:
                return JSONResponse(status_code=400, content={"message": "User name already taken"})
            user_id = f"u-{user_name}"
            gateway.accounts[user_name] = {
                "id": user_id,
                "password": form.get("Password"),
                "displayName": form.get("DisplayName"),
            }
            gateway.users.append({"id": user_id, "name": form.get("DisplayName"), "pictureUrl": ""})
            return JSONResponse({"message": "Registered"})

        @app.post("/api/Account/Login")
        async def login(request: Request):
            rejected = gateway._guard("login", request, authenticated=False)
            if rejected is not None:
                return rejected
            body = await request.json()
            account = gateway.accounts.get(body.get("userName"))
            if account is None or account["password"] != body.get("password"):
                return JSONResponse(status_code=401, content={"message": "Invalid user name or password"})
            token = f"token-{body['userName']}"
            gateway.tokens[token] = body["userName"]
            if gateway.login_omits_token:
                return JSONResponse({"userName": body["userName"]})
            return JSONResponse({
                "token": token,
                "userName": body["userName"],
                "displayName": account["displayName"],
            })

        @app.get("/api/Chat/GetAllUsers")
        async def get_all_users(request: Request):
            rejected = gateway._guard("users", request)
            if rejected is not None:
                return rejected
            if gateway.users_shape == "bare":
                return JSONResponse(gateway.users)
            return JSONResponse({"result": gateway.users})

        @app.post("/api/Chat/PrivateChat")
        async def private_chat(request: Request):
            rejected = gateway._guard("private_chat", request)
            if rejected is not None:
                return rejected
            gateway.last_private_body = await request.body()
            member_id = json.loads(gateway.last_private_body)
            own_id = gateway.accounts[gateway._caller(request)]["id"]
            partner = next((u for u in gateway.users if u["id"] == member_id), {"name": member_id})
            chat = gateway.add_chat(partner["name"], [own_id, member_id])
            return JSONResponse({"chatData": chat, "chatStatus": "Created"})

        @app.get("/api/Chat/GetChat/{chat_id}")
        async def get_chat(chat_id: int, request: Request):
            rejected = gateway._guard("get_chat", request)
            if rejected is not None:
                return rejected
            if chat_id not in gateway.chats:
                return JSONResponse(status_code=404, content={"message": "Chat not found"})
            return JSONResponse(gateway.chats[chat_id])

        @app.post("/api/SignalR/SendMessage")
        async def send_message(request: Request):
            rejected = gateway._guard("send_message", request)
            if rejected is not None:
                return rejected
            body = await request.json()
            gateway.last_send_body = body
            if body["chatId"] not in gateway.chats:
                return JSONResponse(status_code=404, content={"message": "Chat not found"})
            gateway.add_message(body["chatId"], body["Message"], name=gateway._caller(request))
            return PlainTextResponse("Message sent")

        @app.post("/api/Chat/CreateRoom")
        async def create_room(request: Request):
            rejected = gateway._guard("create_room", request)
            if rejected is not None:
                return rejected
            form = await request.form()
            gateway.last_room_form = {
                "Name": form.get("Name"),
                "chatPicture": form.get("chatPicture"),
                "memberIds": form.getlist("memberIds"),
            }
            if form.get("Name") == "taken":
                return JSONResponse({"message": "Room name already exists", "success": False})
            names = [n for n, a in gateway.accounts.items() if a["id"] in form.getlist("memberIds")]
            room = gateway.add_room(form.get("Name"), names)
            return JSONResponse({"message": "Room created successfully", "roomId": room["id"], "success": True})

        @app.post("/api/Chat/join/{room_id}")
        async def join_room(room_id: int, request: Request):
            rejected = gateway._guard("join_room", request)
            if rejected is not None:
                return rejected
            if room_id not in gateway.rooms:
                return JSONResponse({"success": False, "error": "Room not found"})
            return JSONResponse({"result": "Joined room successfully"})

        @app.get("/api/Chat/room/{room_id}")
        async def get_room(room_id: int, request: Request):
            rejected = gateway._guard("get_room", request)
            if rejected is not None:
                return rejected
            if room_id not in gateway.rooms:
                return JSONResponse(status_code=404, content={"message": "Room not found"})
            return JSONResponse(gateway.rooms[room_id])

        @app.get("/api/Chat/groups")
        async def list_groups(request: Request):
            rejected = gateway._guard("groups", request)
            if rejected is not None:
                return rejected
            return JSONResponse(list(gateway.rooms.values()))

        return app


class RecordingConnection:
    """Hub connection double: records invocations and lets tests fire hub events."""

    instances = []

    def __init__(self, url, **options):
        self.url = url
        self.options = options
        self.handlers = {}
        self.invoked = []
        self.started = 0
        self.stopped = 0
        self.did_open = self.will_reconnect = self.did_reconnect = self.did_close = None
        RecordingConnection.instances.append(self)

    def on(self, target, handler):
        self.handlers.setdefault(target, []).append(handler)

    async def start(self):
        self.started += 1

    async def stop(self):
        self.stopped += 1
        if self.did_close:
            self.did_close(None)

    async def invoke(self, target, *arguments):
        self.invoked.append((target, arguments))

    def fire(self, target, *arguments):
        for handler in self.handlers.get(target, []):
            handler(*arguments)


@pytest.fixture(autouse=True)
def reset_connections():
    RecordingConnection.instances.clear()
    yield


@pytest.fixture
def settings():
    """Settings pointing at the fake gateway and an in-memory database."""
    return Settings(base_url=BASE_URL, database_path=":memory:", log_level="WARNING", poll_interval=0.01)


@pytest.fixture
def db():
    """Fresh in-memory DuckDB per test."""
    connection = DatabaseConnection(":memory:")
    yield connection
    connection.close()


@pytest.fixture
def secret_store(db):
    return SecretStore(db.conn)


@pytest.fixture
def kv(db):
    return KeyValueRepository(db.conn)


@pytest.fixture
def session():
    """Unauthenticated session."""
    return Session()


@pytest.fixture
def alice_session(secret_store):
    """Session already logged in as alice, mirrored in the secret store."""
    secret_store.set_token("token-alice")
    secret_store.set_user_name("alice")
    secret_store.set("currentUserId", "u-alice")
    return Session(
        state=SessionState.AUTHENTICATED,
        user_id="u-alice",
        user_name="alice",
        auth_token="token-alice",
    )


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
async def http(gateway):
    """httpx client wired to the fake gateway."""
    transport = ASGITransport(app=gateway.build_app())
    async with AsyncClient(transport=transport, base_url=BASE_URL) as client:
        yield client


@pytest.fixture
def auth_client(http, session, secret_store):
    return AuthClient(http, session, secret_store)


@pytest.fixture
def chat_client(http, alice_session, secret_store):
    return ChatClient(http, alice_session, secret_store)


@pytest.fixture
def room_client(http, alice_session, secret_store):
    return RoomClient(http, alice_session, secret_store)
