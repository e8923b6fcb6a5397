"""Cutover tasks and the progress checkers they poll with."""
