"""Remoting command codec and response futures."""