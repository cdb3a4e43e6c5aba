"""Device discovery and mirroring session core"""
