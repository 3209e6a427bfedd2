"""
FastAPI relay for the Moondream auto-labeler.

Exposes:
- `/auto-label`     : discover-then-detect on one base64 image
- `/`, `/static/*`  : the browser client
- `/graph/ascii`    : ASCII diagram of the LangGraph pipeline
- `/graph/mermaid`  : Mermaid graph source for visualization
- `/health`         : Basic health check
"""
