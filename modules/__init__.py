"""Modules"""
