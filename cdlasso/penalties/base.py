class BasePenalty:
    """Base class for proximal operators."""

    def get_spec(self):
        """Specify the numba types of the class attributes.

        Returns
        -------
        spec: Tuple of (attribute_name, dtype)
            spec to be passed to Numba jitclass to compile the class.
        """

    def params_to_dict(self):
        """Get the parameters to initialize an instance of the class.

        Returns
        -------
        dict_of_params : dict
            The parameters to instantiate an object of the class.
        """

    def set_params(self, **params):
        """Set the parameters of this penalty.

        Parameters
        ----------
        **params : dict
            Penalty parameters.

        Returns
        -------
        self : object
            Returns self.
        """
        for key, value in params.items():
            setattr(self, key, value)
        return self

    def value(self, w):
        """Value of penalty at vector w."""

    def is_penalized(self, n_features):
        """Return a binary mask with the penalized features."""

    def check_n_features(self, n_features):
        """Raise ``DimensionMismatch`` if the penalty does not fit ``n_features``."""

    def alpha_max(self, gradient0):
        """Return penalization value for which 0 is solution."""
