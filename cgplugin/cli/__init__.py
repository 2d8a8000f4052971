"""CLI module for cgplugin."""
