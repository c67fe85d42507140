class EvaluationCounter:
    """
    Counter of function evaluations, bounded by a maximum count.
    """

    def __init__(self, max_count):
        """
        Initialize the counter.

        Parameters
        ----------
        max_count : int
            Maximum number of increments allowed.
        """
        self._max_count = int(max_count)
        self._count = 0

    def increment(self):
        """
        Increment the counter if the maximum count is not reached.

        Returns
        -------
        bool
            Whether the counter has been incremented. If False, the maximum
            count has already been reached and the counter is left unchanged.
        """
        if self._count >= self._max_count:
            return False
        self._count += 1
        return True

    @property
    def count(self):
        """
        Current count.

        Returns
        -------
        int
            Number of successful increments.
        """
        return self._count

    @property
    def max_count(self):
        """
        Maximum count.

        Returns
        -------
        int
            Maximum number of increments allowed.
        """
        return self._max_count
