"""Static website provisioning expressed as an explicit resource dependency graph."""
