"""Agreement HTML and PDF rendering."""
