"""CollabQuest: merit-based hackathon teammate matching."""
