"""Business logic for accounts, file storage and the note catalog."""
