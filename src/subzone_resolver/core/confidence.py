"""
Confidence scoring for geocoding results.

Turns the quality of the geocoding signal (which sources answered, how far
the best match stands apart from the alternates) into a High / Medium / Low
rating that tells the caller how much to trust the resolved subzone.
"""

from typing import Optional

from ..cache.models import Confidence, GeocodeResult, Source


class ConfidenceAssessor:
    """Assess confidence of a geocoding result."""

    # Minimum lead of the best alternate over the next one to be trusted
    SCORE_GAP_THRESHOLD = 30

    # Score above which a lone best match is still considered likely
    GOOD_MATCH_SCORE = 80

    def calculate_confidence(self, result: Optional[GeocodeResult]) -> Confidence:
        """Calculate confidence for a geocode result.

        Args:
            result: Geocoder output, or None if geocoding failed

        Returns:
            Confidence enum value
        """
        if result is None:
            return Confidence.LOW

        from_postal = Source.POSTAL in result.source

        # Postal codes identify a single building
        if from_postal and result.postal:
            return Confidence.HIGH

        # A single match with nothing competing against it
        candidates = result.candidates
        if not candidates:
            return Confidence.HIGH if from_postal else Confidence.MEDIUM

        if len(candidates) >= 2:
            top_score = candidates[0].score or 0
            second_score = candidates[1].score or 0
            score_gap = top_score - second_score

            if score_gap > self.SCORE_GAP_THRESHOLD:
                return Confidence.MEDIUM

            # Close scores: the user should pick
            if top_score < self.GOOD_MATCH_SCORE:
                return Confidence.LOW

        if candidates[0].score and candidates[0].score > self.GOOD_MATCH_SCORE:
            return Confidence.MEDIUM

        return Confidence.LOW

    def get_confidence_message(
        self,
        confidence: Confidence,
        subzone_name: Optional[str] = None,
    ) -> str:
        """Get the user-facing message for a confidence level.

        Args:
            confidence: Confidence level (enum or its string value)
            subzone_name: Resolved subzone name, if any

        Returns:
            Message string
        """
        if confidence == Confidence.HIGH:
            return f"Neighbourhood: {subzone_name}" if subzone_name else "Neighbourhood found"
        if confidence == Confidence.MEDIUM:
            if subzone_name:
                return f"Likely: {subzone_name} (based on best match)"
            return "Likely neighbourhood found"
        if confidence == Confidence.LOW:
            return "Multiple matches found - select your address"
        return "Unable to determine neighbourhood"


_assessor = ConfidenceAssessor()


def calculate_confidence(result: Optional[GeocodeResult]) -> Confidence:
    """Module-level shortcut for ConfidenceAssessor.calculate_confidence."""
    return _assessor.calculate_confidence(result)


def get_confidence_message(confidence: Confidence, subzone_name: Optional[str] = None) -> str:
    """Module-level shortcut for ConfidenceAssessor.get_confidence_message."""
    return _assessor.get_confidence_message(confidence, subzone_name)
