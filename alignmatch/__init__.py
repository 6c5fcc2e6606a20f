"""AlignMatch compatibility scoring and match generation engine."""

__version__ = "0.1.0"
