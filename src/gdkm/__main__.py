from gdkm import main

main()
