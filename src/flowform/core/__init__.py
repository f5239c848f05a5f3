"""Core building blocks shared by every FlowForm module."""
