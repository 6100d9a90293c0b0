"""RDF projection of the outline tree."""

from trestle.rdf.projector import RDFProjector
from trestle.rdf.terms import Vocabulary

__all__ = ["RDFProjector", "Vocabulary"]
