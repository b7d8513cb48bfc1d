"""Inference providers for the assistant (local Ollama-style server, cloud chat API)."""
