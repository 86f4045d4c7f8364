"""Background content analysis for flashcards."""
