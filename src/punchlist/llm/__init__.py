"""
Task suggestion gateways.

Components:
- suggestions.py: prompt, response parsing, Gemini generateContent gateway (httpx)
- client.py: OpenAI-compatible (OpenRouter) gateway
- offline.py: deterministic gateway for demos
"""
