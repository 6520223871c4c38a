"""Core building blocks shared by shelffy features and platform modules."""
