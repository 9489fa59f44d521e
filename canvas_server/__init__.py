"""FastAPI host exposing the canvas engine to a renderer."""
