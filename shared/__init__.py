"""Shared configuration, logging and persistence for Workflow Studio"""
