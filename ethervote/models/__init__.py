from .candidate_model import Candidate
from .district_model import Constituency, District
from .vote_model import VoteRecord
from .voter_model import Voter

__all__ = ["Candidate", "Constituency", "District", "VoteRecord", "Voter"]
