"""HTTP server exposing chats, streamed turns and approvals."""
