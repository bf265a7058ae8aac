"""HTTP / WebSocket 接口."""
