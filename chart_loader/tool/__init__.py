"""Command line tool for inspecting charts in Helm chart repositories."""
