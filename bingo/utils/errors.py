class BingoError(Exception):
    '''Base class for errors raised by the progress engine.'''


class RequirementParseError(BingoError):
    '''An authored requirement could not be turned into a RequirementDef.'''


class WriteConflictError(BingoError):
    '''Concurrent updates kept winning the compare-and-set; the caller may retry.'''

    def __init__(self, team_id: str, tile_id: str, requirement_key: str, attempts: int):
        super().__init__(
            f'Progress for team={team_id} tile={tile_id} key={requirement_key} '
            f'changed underneath us {attempts} times'
        )
        self.team_id = team_id
        self.tile_id = tile_id
        self.requirement_key = requirement_key
        self.attempts = attempts


class RankingUnavailableError(BingoError):
    '''The ranking service could not answer; distinct from "no snapshot".'''
