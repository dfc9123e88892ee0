"""Adapters connecting the core to SQLite, Telethon and the chat command surface."""
