"""
Pipeline package for the Moondream auto-labeler.

Contains:
- `state`  : Typed `LabelState` definition
- `labels` : discovery question phrasing, answer parsing, detection fold
- `tools`  : LangChain tools wrapping the Moondream API
- `nodes`  : LangGraph node callables operating over `LabelState`
- `graph`  : StateGraph builder, compiled `pipeline` and `label_image`
"""
