def format_duration(seconds: int) -> str:
    '''Whole seconds as "H:MM:SS", or "M:SS" under an hour.'''
    secs = max(0, int(seconds))
    hours, rem = divmod(secs, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f'{hours}:{minutes:02d}:{secs:02d}'
    return f'{minutes}:{secs:02d}'
