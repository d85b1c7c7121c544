"""Parse ADL token streams into syntax trees and convert analysis commands to TIMBER scripts."""

__version__ = "0.1.0"