"""Quote assembly and company profile output."""
