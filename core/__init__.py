"""Core: configuration, erreurs et accès fichiers"""
