"""Game content and composition root for the event chain engine."""
