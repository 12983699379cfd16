"""
畫面文字與按鈕

組出使用者看到的文字與 button grid。純格式化，不碰資料庫也不碰 SessionStore
"""
from typing import List, Sequence, Tuple

from models import Nomination, Nominee, Room
from schemas import Button, ButtonGrid, NomineeResult
from services.payload_service import BACK_PAYLOAD, PayloadKind, format_payload

MAX_TEXT_LENGTH = 4000
TRUNCATED_MARKER = "\n\n(truncated, too much text)"

BACK_LABEL = "⬅️ Back to nominations"

# ============ Usage hints ============

START_TEXT = (
    "Hi! This bot runs voting by nominations inside rooms.\n\n"
    "Commands:\n"
    "/create_room Title | Password - create your own room\n"
    "/my_rooms - list your rooms\n"
    "/room ID Password - enter a room as a member\n"
    "/nominations - show the nominations of the active room (with IDs)\n"
    "/add_nomination roomID | Title | Description - add a nomination (room owner only)\n"
    "/add_nominee nominationID | Name - add a nominee\n"
    "/set_nominee_media nomineeID - attach or replace a nominee photo/video\n"
    "/delete_nomination nominationID - delete a nomination\n"
    "/delete_nominee nomineeID - delete a nominee\n"
    "/results nominationID - results of one nomination (room owner only)"
)
HELP_TEXT = "See /start, everything is described there 🙂"

USAGE_CREATE_ROOM = "Usage: /create_room Title | Password\n\nExample:\n/create_room New Year 2025 | secret123"
USAGE_JOIN_ROOM = "Usage: /room ID Password\nExample: /room 1 secret123"
USAGE_ADD_NOMINATION = (
    "Usage: /add_nomination roomID | Title | Description (optional)\n\n"
    "Example:\n/add_nomination 1 | Best developer | For the cleanest code"
)
USAGE_ADD_NOMINEE = "Usage: /add_nominee nominationID | Name\nExample:\n/add_nominee 1 | John Smith"
USAGE_SET_MEDIA = (
    "Usage: /set_nominee_media nomineeID\n\n"
    "After the command send one photo or video for this nominee.\n"
    "You can run it again, the media will be replaced."
)
USAGE_DELETE_NOMINATION = (
    "Usage: /delete_nomination nominationID\n\n"
    "Nomination IDs are shown by /nominations."
)
USAGE_DELETE_NOMINEE = (
    "Usage: /delete_nominee nomineeID\n\n"
    "The nominee ID is shown on its card when you open a nomination."
)
USAGE_RESULTS = (
    "Usage:\n"
    "/results nominationID - results of one nomination\n"
    "/results roomID nominationID - the same, with the room given explicitly\n\n"
    "Nomination IDs are shown by /nominations."
)

# ============ Fixed replies ============

ENTER_ROOM_FIRST = "Enter a room first: /room ID Password"
NO_ROOM_ACCESS = "You have no access to this room. Enter it first with /room."
GENERIC_FAILURE = "Something went wrong, please try again."
UNKNOWN_COMMAND = "Unknown command. Try /start"
NOMINATIONS_HINT = "To see the nominations of a room use /nominations (after /room)."
SEND_MEDIA_PROMPT = "OK! Now send a photo or video for this nominee as the next message."
SEND_NOMINEE_NAME_PROMPT = "Send the name of the new nominee as one text message."
MEDIA_SAVED = "Nominee media saved ✅"


def back_button() -> List[Button]:
    return [Button(label=BACK_LABEL, payload=BACK_PAYLOAD)]


def back_grid() -> ButtonGrid:
    return [back_button()]


def truncate(text: str) -> str:
    if len(text) > MAX_TEXT_LENGTH:
        return text[:MAX_TEXT_LENGTH] + TRUNCATED_MARKER
    return text


def room_created_text(room_id: int, title: str, password: str) -> str:
    return (
        f"Room created! 🎉\nID: {room_id}\nTitle: {title}\nPassword: {password}\n\n"
        "Share the ID and password with the members.\n"
        f"To enter as a member: /room {room_id} {password}"
    )


def rooms_list_text(rooms: Sequence[Room]) -> str:
    if not rooms:
        return "You have no rooms yet. Create one: /create_room Title | Password"
    lines = ["Your rooms:"]
    lines.extend(f"• ID: {room.id} - {room.title}" for room in rooms)
    lines.append("\nTo enter a room as a member:\n/room ID Password")
    return "\n".join(lines)


def room_entered_text(room: Room) -> str:
    return f"You entered the room: {room.title} (ID {room.id})\nNow you can see the nominations with /nominations"


def nominations_list(nominations: Sequence[Nomination], is_owner: bool) -> Tuple[str, ButtonGrid]:
    """
    Nomination list with an "open" button per row; owners also get a
    results button next to it.
    """
    if not nominations:
        return "There are no nominations in this room yet.", []

    lines = ["Nominations in the room:"]
    grid: ButtonGrid = []
    for nomination in nominations:
        lines.append(f"ID {nomination.id} - {nomination.name}")
        row = [Button(label="🗳 Open", payload=format_payload(PayloadKind.OPEN_NOMINATION, nomination.id))]
        if is_owner:
            row.append(Button(label="📊 Results", payload=format_payload(PayloadKind.RESULTS, nomination.id)))
        grid.append(row)

    lines.append("\nThese IDs can be used in commands:")
    lines.append("/add_nominee nominationID | Name")
    lines.append("/delete_nomination nominationID")
    lines.append("/results nominationID")
    return "\n".join(lines), grid


def nomination_header(nomination_id: int, name: str) -> str:
    return f"🏆 Nomination: {name} (ID {nomination_id})"


def owner_controls(nomination_id: int) -> ButtonGrid:
    return [
        [Button(label="➕ Add nominee", payload=format_payload(PayloadKind.ADD_NOMINEE, nomination_id))],
        back_button(),
    ]


def nominee_card(nominee: Nominee, is_owner: bool) -> Tuple[str, ButtonGrid]:
    caption = f"ID {nominee.id} - {nominee.name}\n\nPress the button to cast your vote."
    grid: ButtonGrid = [[Button(label="✅ Vote", payload=format_payload(PayloadKind.VOTE, nominee.id))]]
    if is_owner:
        grid.append([
            Button(label="🖼 Media", payload=format_payload(PayloadKind.SET_MEDIA, nominee.id)),
            Button(label="🗑 Delete", payload=format_payload(PayloadKind.DELETE_NOMINEE, nominee.id)),
        ])
    grid.append(back_button())
    return caption, grid


def results_text(
    room_title: str,
    room_id: int,
    nomination_name: str,
    nomination_id: int,
    results: Sequence[NomineeResult],
) -> str:
    lines = [
        "Voting results",
        f"Room: {room_title} (ID {room_id})",
        f"Nomination: {nomination_name} (ID {nomination_id})",
        "",
    ]
    if not results:
        lines.append("There are no nominees in this nomination yet.")
    else:
        lines.extend(
            f"• {row.name} (ID {row.nominee_id}) - {row.vote_count} vote(s)" for row in results
        )
    return truncate("\n".join(lines) + "\n")
