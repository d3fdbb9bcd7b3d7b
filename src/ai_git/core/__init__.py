"""Git access, validation and prompt building shared by the workflows."""
