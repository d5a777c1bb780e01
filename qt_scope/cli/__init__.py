"""QueryTorque SCOPE CLI package."""
