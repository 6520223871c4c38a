"""Platform infrastructure shared by shelffy features."""
