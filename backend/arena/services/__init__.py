"""Arena domain services: rounds and round history.

Pure(ish) game logic lives here so HTTP routes and socket handlers stay
thin transport adapters.
"""
