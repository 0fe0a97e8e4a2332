"""Cache keys shared by the chat services."""

from famchat.infrastructure.query_cache import QueryKey

THREADS = "chat-threads"
MESSAGES = "chat-messages"
RECEIPTS = "read-receipts"
UNREAD = "unread-count"

ALL_THREAD_LISTS: QueryKey = (THREADS,)


def thread_list_key(member_id: str) -> QueryKey:
    return (THREADS, member_id)


def message_list_key(thread_id: str) -> QueryKey:
    return (MESSAGES, thread_id)


def receipts_key(thread_id: str, excluding_member: str) -> QueryKey:
    return (RECEIPTS, thread_id, excluding_member)


def unread_key(member_id: str) -> QueryKey:
    return (UNREAD, member_id)
