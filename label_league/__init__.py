"""Record Label League: season lifecycle engine for a music fantasy league."""
