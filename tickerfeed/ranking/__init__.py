"""Feed ranking core: interest mining, scoring, cursors and page assembly."""
