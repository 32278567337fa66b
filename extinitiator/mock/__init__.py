"""Mock blockchain client answering JSON-RPC, WebSocket and REST requests."""