"""Core domain: identity, authorization, teams and invitations."""
