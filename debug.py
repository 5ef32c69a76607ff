import sys

debug_flag = False
verbose_flag = False

def set_debug(flag):
    global debug_flag
    debug_flag = flag

def set_verbose(flag):
    global verbose_flag
    verbose_flag = flag

def debug(*args, **kwargs):
    if debug_flag:
        kwargs['file'] = sys.stderr
        print(*args, **kwargs)

def verbose(*args, **kwargs):
    if verbose_flag or debug_flag:
        kwargs['file'] = sys.stderr
        print(*args, **kwargs)
