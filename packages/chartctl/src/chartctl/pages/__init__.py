"""GitHub Pages build inputs: frontpage and Jekyll theme files."""
