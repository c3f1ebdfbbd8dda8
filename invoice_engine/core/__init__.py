"""CSV collaborators: invoice import and catalog seeding."""
